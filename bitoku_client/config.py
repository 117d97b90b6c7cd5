from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey


BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_PROGRAM_ID = "ALFYRwSZYXC31JpfSr2yKJ2aHBkbAQ7JXkGydnP3bxrN"
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Network
    rpc_url: str = Field(
        default="https://api.devnet.solana.com",
        description="Solana JSON-RPC endpoint",
        validation_alias=AliasChoices("rpc_url", "bitoku_rpc_url", "SOLANA_RPC_URL"),
    )
    commitment: str = Field(
        default="confirmed",
        description="Commitment level a transaction must reach to count as confirmed",
    )
    rpc_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per RPC call")
    rpc_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per RPC call before a transport error is surfaced",
    )
    rpc_retry_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Initial backoff between RPC attempts",
    )

    # Remote program
    program_id: str = Field(
        default=DEFAULT_PROGRAM_ID,
        description="Address of the Bitoku agent program",
        validation_alias=AliasChoices("program_id", "bitoku_program_id"),
    )
    keypair_path: Path = Field(
        default=Path("~/.config/solana/id.json"),
        description="Solana CLI keypair file used as fee payer and signer",
    )
    compute_unit_limit: int = Field(
        default=600_000,
        ge=1,
        le=1_400_000,
        description="Compute units requested for every Bitoku transaction",
    )

    # Confirmation
    confirm_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Max seconds to poll for confirmation before the outcome is unknown",
    )
    poll_interval_seconds: float = Field(default=1.0, gt=0, description="Initial confirmation poll interval")
    max_stale_retries: int = Field(
        default=3,
        ge=0,
        description="Times a transaction is re-signed with a fresh blockhash after expiring",
    )

    @field_validator("commitment")
    @classmethod
    def _check_commitment(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in COMMITMENT_LEVELS:
            raise ValueError(f"commitment must be one of {', '.join(COMMITMENT_LEVELS)}")
        return value

    @field_validator("program_id")
    @classmethod
    def _check_program_id(cls, value: str) -> str:
        value = value.strip()
        try:
            Pubkey.from_string(value)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"program_id is not a valid pubkey: {exc}") from exc
        return value

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        object.__setattr__(self, "keypair_path", self.keypair_path.expanduser())

    @property
    def program_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.program_id)


# Global settings instance
settings = Settings()
