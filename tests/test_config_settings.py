import pytest
from pydantic import ValidationError

from bitoku_client.config import DEFAULT_PROGRAM_ID, Settings


def test_defaults(monkeypatch):
    """Defaults target devnet and the deployed program."""

    for name in ("RPC_URL", "BITOKU_RPC_URL", "SOLANA_RPC_URL", "PROGRAM_ID", "BITOKU_PROGRAM_ID", "COMMITMENT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.rpc_url == "https://api.devnet.solana.com"
    assert settings.commitment == "confirmed"
    assert settings.program_id == DEFAULT_PROGRAM_ID
    assert settings.compute_unit_limit == 600_000
    assert str(settings.program_pubkey) == DEFAULT_PROGRAM_ID


def test_rpc_url_from_solana_env(monkeypatch):
    """The Solana CLI variable is honoured when no Bitoku-specific one is set."""

    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("BITOKU_RPC_URL", raising=False)
    monkeypatch.setenv("SOLANA_RPC_URL", "http://localhost:8899")

    settings = Settings(_env_file=None)

    assert settings.rpc_url == "http://localhost:8899"


def test_commitment_is_normalised(monkeypatch):
    monkeypatch.setenv("COMMITMENT", " Finalized ")

    assert Settings(_env_file=None).commitment == "finalized"


def test_unknown_commitment_is_rejected(monkeypatch):
    monkeypatch.setenv("COMMITMENT", "recent")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_invalid_program_id_is_rejected(monkeypatch):
    monkeypatch.setenv("BITOKU_PROGRAM_ID", "not-a-pubkey")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_keypair_path_is_expanded(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("KEYPAIR_PATH", "~/keys/id.json")

    settings = Settings(_env_file=None)

    assert settings.keypair_path == tmp_path / "keys" / "id.json"


def test_compute_unit_limit_bounds(monkeypatch):
    monkeypatch.setenv("COMPUTE_UNIT_LIMIT", "2000000")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
