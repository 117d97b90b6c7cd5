import json

import pytest
from nacl.signing import SigningKey, VerifyKey
from solders.keypair import Keypair

from bitoku_client.core.errors import SigningError
from bitoku_client.core.execution.keys import KeyProvider, NaclKeyProvider


def test_provider_satisfies_protocol(key_provider):
    assert isinstance(key_provider, KeyProvider)


def test_public_key_matches_solana_keypair():
    keypair = Keypair()

    provider = NaclKeyProvider.from_secret_key(bytes(keypair))

    assert provider.public_key == keypair.pubkey()


def test_signature_matches_solana_keypair():
    keypair = Keypair()
    provider = NaclKeyProvider.from_secret_key(bytes(keypair))

    assert provider.sign(b"message") == bytes(keypair.sign_message(b"message"))


def test_signature_verifies(key_provider):
    signature = key_provider.sign(b"payload")

    VerifyKey(bytes(key_provider.public_key)).verify(b"payload", signature)


def test_keypair_file(tmp_path):
    signing_key = SigningKey.generate()
    secret = bytes(signing_key) + bytes(signing_key.verify_key)
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(secret)))

    provider = NaclKeyProvider.from_keypair_file(path)

    assert bytes(provider.public_key) == bytes(signing_key.verify_key)


def test_missing_keypair_file(tmp_path):
    with pytest.raises(SigningError):
        NaclKeyProvider.from_keypair_file(tmp_path / "missing.json")


def test_keypair_file_with_wrong_shape(tmp_path):
    path = tmp_path / "id.json"
    path.write_text(json.dumps({"secret": "nope"}))

    with pytest.raises(SigningError):
        NaclKeyProvider.from_keypair_file(path)


def test_mismatched_public_half_is_rejected():
    secret = bytes(range(32)) + bytes(32)

    with pytest.raises(SigningError):
        NaclKeyProvider.from_secret_key(secret)


def test_wrong_seed_length_is_rejected():
    with pytest.raises(SigningError):
        NaclKeyProvider.from_seed(b"short")


def test_repr_hides_secret(key_provider):
    assert str(key_provider.public_key) in repr(key_provider)
