"""Program-derived addresses used by the Bitoku agent program."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from solders.pubkey import Pubkey

from ..errors import AddressDerivationFailure

MAX_SEED_LEN = 32
MAX_SEEDS = 16

BOOKKEEPER_SEED = b"bookkeeper"
REQUEST_SEED = b"request"


@dataclass(frozen=True)
class DerivedAddress:
    address: Pubkey
    bump: int

    def __bytes__(self) -> bytes:
        return bytes(self.address)


def _check_seeds(seeds: Tuple[bytes, ...], max_seeds: int = MAX_SEEDS) -> None:
    if len(seeds) > max_seeds:
        raise AddressDerivationFailure(f"at most {max_seeds} seeds are allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise AddressDerivationFailure(
                f"seed {seed[:8]!r}... is {len(seed)} bytes, maximum is {MAX_SEED_LEN}"
            )


def create_program_address(seeds: Tuple[bytes, ...], program_id: Pubkey) -> Optional[Pubkey]:
    """Address for an exact seed list (bump included). Returns None if it lands on the ed25519 curve."""
    _check_seeds(seeds)
    try:
        return Pubkey.create_program_address(list(seeds), program_id)
    except Exception:  # noqa: BLE001
        return None


@lru_cache(maxsize=128)
def find_program_address(seeds: Tuple[bytes, ...], program_id: Pubkey) -> DerivedAddress:
    """Search bumps 255..0 for the first off-curve address."""
    # One seed slot is reserved for the bump
    _check_seeds(seeds, max_seeds=MAX_SEEDS - 1)
    try:
        address, bump = Pubkey.find_program_address(list(seeds), program_id)
    except Exception as exc:  # noqa: BLE001
        raise AddressDerivationFailure(f"no viable bump seed for {seeds!r} under {program_id}: {exc}") from exc
    return DerivedAddress(address=address, bump=bump)


class AddressDeriver:
    """Derives the accounts owned by one deployment of the program."""

    def __init__(self, program_id: Pubkey):
        self.program_id = program_id

    def derive(self, seed_tag: bytes, *seeds: bytes) -> DerivedAddress:
        return find_program_address((bytes(seed_tag), *(bytes(s) for s in seeds)), self.program_id)

    def bookkeeper(self) -> DerivedAddress:
        """Global registry of client ids."""
        return self.derive(BOOKKEEPER_SEED)

    def request_account(self, caller: Pubkey) -> DerivedAddress:
        """Per-caller account the program stores pending requests in."""
        return self.derive(REQUEST_SEED, bytes(caller))


__all__ = [
    "AddressDeriver",
    "DerivedAddress",
    "create_program_address",
    "find_program_address",
    "BOOKKEEPER_SEED",
    "REQUEST_SEED",
]
