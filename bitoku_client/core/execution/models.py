"""
Transaction execution models and types.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from solders.hash import Hash

from ..errors import ConfirmationTimeout, RemoteRejection


class Commitment(str, Enum):
    """Solana commitment levels, weakest first."""
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _COMMITMENT_RANK[self]


_COMMITMENT_RANK = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}


class SubmissionStatus(str, Enum):
    """Outcome of a submission."""
    CONFIRMED = "confirmed"      # Reached the requested commitment
    FAILED = "failed"            # Landed with an error, or was rejected
    UNKNOWN = "unknown"          # Poll timed out, may still land


@dataclass(frozen=True)
class Checkpoint:
    """Recent blockhash a transaction is stamped with."""
    blockhash: Hash
    last_valid_block_height: Optional[int] = None


@dataclass(frozen=True)
class SignedEnvelope:
    """A signed, serialized transaction ready for submission."""
    raw: bytes
    signature: str
    checkpoint: Checkpoint

    def to_base64(self) -> str:
        return base64.b64encode(self.raw).decode("ascii")


@dataclass
class SignatureStatus:
    """One entry of ``getSignatureStatuses``."""
    slot: Optional[int] = None
    confirmations: Optional[int] = None
    confirmation_status: Optional[str] = None
    err: Any = None

    @classmethod
    def from_rpc(cls, value: dict) -> "SignatureStatus":
        return cls(
            slot=value.get("slot"),
            confirmations=value.get("confirmations"),
            confirmation_status=value.get("confirmationStatus"),
            err=value.get("err"),
        )

    @property
    def failed(self) -> bool:
        return self.err is not None

    def reaches(self, commitment: Union[Commitment, str]) -> bool:
        commitment = Commitment(commitment)
        if self.confirmation_status is None:
            # Old nodes omit the field; finalized transactions report no confirmations
            if self.confirmations is None:
                return True
            return commitment != Commitment.FINALIZED
        try:
            level = Commitment(self.confirmation_status)
        except ValueError:
            return False
        return level.rank >= commitment.rank


@dataclass
class SubmissionResult:
    """Discriminated result of submitting one envelope."""
    signature: str
    status: SubmissionStatus
    slot: Optional[int] = None
    error: Optional[str] = None
    rejection: Optional[RemoteRejection] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.status == SubmissionStatus.CONFIRMED

    def raise_for_status(self) -> "SubmissionResult":
        """Raise RemoteRejection for FAILED and ConfirmationTimeout for UNKNOWN."""
        if self.status == SubmissionStatus.FAILED:
            if self.rejection is not None:
                raise self.rejection
            raise RemoteRejection(self.error or "transaction failed", signature=self.signature)
        if self.status == SubmissionStatus.UNKNOWN:
            raise ConfirmationTimeout(
                self.error or "transaction confirmation timed out",
                signature=self.signature,
            )
        return self


__all__ = [
    "Commitment",
    "SubmissionStatus",
    "Checkpoint",
    "SignedEnvelope",
    "SignatureStatus",
    "SubmissionResult",
]
