"""
Error taxonomy for the Bitoku client.

Errors are split into local errors (bad input, derivation, signing), which
never reach the network, and network errors, of which only transient transport
failures and expired blockhashes are retried automatically.
"""

from enum import IntEnum
from typing import Any, Optional


class ProgramErrorCode(IntEnum):
    """Custom error codes returned by the Bitoku agent program."""

    INVALID_INSTRUCTION = 0
    INVALID_INSTRUCTION_DATA = 1
    NO_AVAILABLE_CLIENTS = 2
    OVERFLOW = 3
    UNREGISTERED_CLIENT = 4
    INVALID_NAME = 5
    INVALID_ACCOUNT = 6
    INVALID_CLIENT_ID = 7
    INVALID_FILE_ID = 8
    INVALID_POSITION = 9
    CLIENT_MISMATCH = 10

    @property
    def message(self) -> str:
        return _PROGRAM_ERROR_MESSAGES[self]


_PROGRAM_ERROR_MESSAGES = {
    ProgramErrorCode.INVALID_INSTRUCTION: "Instruction is not valid",
    ProgramErrorCode.INVALID_INSTRUCTION_DATA: "instruction_data is invalid",
    ProgramErrorCode.NO_AVAILABLE_CLIENTS: "client limit reached",
    ProgramErrorCode.OVERFLOW: "numbers overflow",
    ProgramErrorCode.UNREGISTERED_CLIENT: "client is not registered",
    ProgramErrorCode.INVALID_NAME: "name is not valid",
    ProgramErrorCode.INVALID_ACCOUNT: "account is not valid",
    ProgramErrorCode.INVALID_CLIENT_ID: "client is not valid",
    ProgramErrorCode.INVALID_FILE_ID: "file id is not valid",
    ProgramErrorCode.INVALID_POSITION: "provided position is not valid",
    ProgramErrorCode.CLIENT_MISMATCH: "client id mismatch",
}


class BitokuClientError(Exception):
    """Base exception for client errors."""

    recoverable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(BitokuClientError, ValueError):
    """An argument cannot be encoded. Raised before any network call."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PayloadTooLarge(InvalidInput):
    """A fixed-size field (name or data) was given more bytes than it holds."""

    def __init__(self, field: str, size: int, limit: int):
        super().__init__(f"{field} is {size} bytes, maximum is {limit}", field=field)
        self.size = size
        self.limit = limit


class AddressDerivationFailure(BitokuClientError):
    """No program-derived address exists for the given seeds."""
    pass


class SigningError(BitokuClientError):
    """The key provider could not produce a valid signature."""
    pass


class NetworkError(BitokuClientError):
    """Base class for failures reported by, or while talking to, the network."""
    pass


class StaleCheckpoint(NetworkError):
    """The blockhash stamped on the transaction is missing or expired."""

    recoverable = True


class NetworkTransportError(NetworkError):
    """Transient I/O failure talking to the RPC endpoint."""

    recoverable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteRejection(NetworkError):
    """The network or the remote program rejected the transaction."""

    def __init__(
        self,
        message: str,
        reason: Any = None,
        instruction_index: Optional[int] = None,
        program_error: Optional[ProgramErrorCode] = None,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.instruction_index = instruction_index
        self.program_error = program_error
        self.signature = signature
        self.logs = logs or []

    @property
    def already_processed(self) -> bool:
        """The cluster has already seen this exact transaction (a resend of a landed send)."""
        if self.reason == "AlreadyProcessed":
            return True
        return "already been processed" in self.message.lower()

    @classmethod
    def from_transaction_error(
        cls,
        err: Any,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
    ) -> "RemoteRejection":
        """Build a rejection from a Solana ``TransactionError`` JSON value."""
        instruction_index, program_error, detail = decode_transaction_error(err)
        if program_error is not None:
            message = f"program error {int(program_error)}: {program_error.message}"
        else:
            message = f"transaction failed: {detail}"
        if instruction_index is not None:
            message = f"instruction {instruction_index} {message}"
        return cls(
            message,
            reason=err,
            instruction_index=instruction_index,
            program_error=program_error,
            signature=signature,
            logs=logs,
        )


class ConfirmationTimeout(NetworkError):
    """Polling gave up before the network reported a definitive outcome."""

    def __init__(self, message: str, signature: str):
        super().__init__(message)
        self.signature = signature


def decode_transaction_error(err: Any) -> tuple[Optional[int], Optional[ProgramErrorCode], str]:
    """
    Unpack a Solana transaction error.

    Handles the shapes returned by ``getSignatureStatuses`` and preflight
    failures: a bare string (``"AccountInUse"``), ``{"InstructionError": [i, "..."]}``
    and ``{"InstructionError": [i, {"Custom": n}]}``.

    Returns:
        (instruction index, program error code, human readable detail)
    """
    if isinstance(err, str):
        return None, None, err

    if isinstance(err, dict) and "InstructionError" in err:
        index, inner = err["InstructionError"]
        if isinstance(inner, dict) and "Custom" in inner:
            code = inner["Custom"]
            try:
                program_error = ProgramErrorCode(code)
            except ValueError:
                return index, None, f"custom program error {code}"
            return index, program_error, program_error.message
        return index, None, str(inner)

    return None, None, str(err)


__all__ = [
    "ProgramErrorCode",
    "BitokuClientError",
    "InvalidInput",
    "PayloadTooLarge",
    "AddressDerivationFailure",
    "SigningError",
    "NetworkError",
    "StaleCheckpoint",
    "NetworkTransportError",
    "RemoteRejection",
    "ConfirmationTimeout",
    "decode_transaction_error",
]
