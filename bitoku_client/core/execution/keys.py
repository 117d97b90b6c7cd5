"""
Key custody for the transaction signer.

The rest of the client only sees the ``KeyProvider`` protocol: a public key and
a ``sign`` call. Secret bytes stay inside the provider.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from nacl.signing import SigningKey
from solders.pubkey import Pubkey

from ..errors import SigningError

SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64
SIGNATURE_LENGTH = 64


@runtime_checkable
class KeyProvider(Protocol):
    @property
    def public_key(self) -> Pubkey:
        ...

    def sign(self, message: bytes) -> bytes:
        ...


class NaclKeyProvider:
    """Ed25519 signer backed by a PyNaCl ``SigningKey``."""

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key
        self._public_key = Pubkey(bytes(signing_key.verify_key))

    @classmethod
    def generate(cls) -> "NaclKeyProvider":
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "NaclKeyProvider":
        if len(seed) != SEED_LENGTH:
            raise SigningError(f"ed25519 seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        return cls(SigningKey(bytes(seed)))

    @classmethod
    def from_secret_key(cls, secret_key: Union[bytes, list[int]]) -> "NaclKeyProvider":
        """Load a 64-byte Solana secret key (seed followed by public key)."""
        raw = bytes(secret_key)
        if len(raw) != SECRET_KEY_LENGTH:
            raise SigningError(f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(raw)}")
        provider = cls.from_seed(raw[:SEED_LENGTH])
        if bytes(provider.public_key) != raw[SEED_LENGTH:]:
            raise SigningError("secret key public half does not match its seed")
        return provider

    @classmethod
    def from_keypair_file(cls, path: Union[str, Path]) -> "NaclKeyProvider":
        """Load a Solana CLI keypair file (JSON array of 64 integers)."""
        path = Path(path).expanduser()
        try:
            values = json.loads(path.read_text())
        except FileNotFoundError as exc:
            raise SigningError(f"keypair file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise SigningError(f"keypair file {path} is not valid JSON") from exc
        if not isinstance(values, list) or not all(isinstance(v, int) and 0 <= v <= 255 for v in values):
            raise SigningError(f"keypair file {path} must hold a JSON array of bytes")
        return cls.from_secret_key(values)

    @property
    def public_key(self) -> Pubkey:
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"NaclKeyProvider(public_key={self._public_key})"


__all__ = ["KeyProvider", "NaclKeyProvider", "SIGNATURE_LENGTH"]
