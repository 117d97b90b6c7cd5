"""Client for the Bitoku agent storage program on Solana."""

from .client import BitokuClient
from .core.errors import (
    AddressDerivationFailure,
    BitokuClientError,
    ConfirmationTimeout,
    InvalidInput,
    NetworkTransportError,
    PayloadTooLarge,
    ProgramErrorCode,
    RemoteRejection,
    SigningError,
    StaleCheckpoint,
)
from .core.execution import NaclKeyProvider, SubmissionResult, SubmissionStatus
from .core.program import Opcode, RequestType

__version__ = "0.1.0"

__all__ = [
    "BitokuClient",
    "NaclKeyProvider",
    "SubmissionResult",
    "SubmissionStatus",
    "Opcode",
    "RequestType",
    "BitokuClientError",
    "InvalidInput",
    "PayloadTooLarge",
    "AddressDerivationFailure",
    "SigningError",
    "StaleCheckpoint",
    "NetworkTransportError",
    "RemoteRejection",
    "ConfirmationTimeout",
    "ProgramErrorCode",
]
