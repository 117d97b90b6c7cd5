"""
Transaction assembly: compute budget + program instruction, stamped, signed, serialized.
"""

import logging
from typing import Optional

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from solders.compute_budget import set_compute_unit_limit
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction

from ..errors import SigningError, StaleCheckpoint
from ..program.instructions import EncodedInstruction
from .keys import SIGNATURE_LENGTH, KeyProvider
from .models import Checkpoint, SignedEnvelope

logger = logging.getLogger(__name__)

DEFAULT_COMPUTE_UNIT_LIMIT = 600_000


class TransactionAssembler:
    """
    Builds signed envelopes for one fee payer.

    The message always carries two instructions, in this order:
    0. ComputeBudget SetComputeUnitLimit
    1. the Bitoku program instruction

    The caller's key pays the fee and is the only signer.
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
    ):
        if key_provider is None:
            raise SigningError("no key provider configured")
        self.key_provider = key_provider
        self.compute_unit_limit = compute_unit_limit

    def build_message(self, instruction: EncodedInstruction, checkpoint: Checkpoint) -> Message:
        return Message.new_with_blockhash(
            [set_compute_unit_limit(self.compute_unit_limit), instruction.to_instruction()],
            self.key_provider.public_key,
            checkpoint.blockhash,
        )

    def assemble(
        self,
        instruction: EncodedInstruction,
        checkpoint: Optional[Checkpoint],
    ) -> SignedEnvelope:
        """
        Sign ``instruction`` against ``checkpoint``.

        Raises:
            StaleCheckpoint: no checkpoint was supplied
            SigningError: the key provider failed or produced a bad signature
        """
        if checkpoint is None or checkpoint.blockhash is None:
            raise StaleCheckpoint("no recent blockhash to stamp the transaction with")

        payer = self.key_provider.public_key
        message = self.build_message(instruction, checkpoint)
        if message.account_keys[0] != payer:
            raise SigningError(f"fee payer {message.account_keys[0]} is not the signer {payer}")

        message_bytes = bytes(message)
        try:
            signature_bytes = bytes(self.key_provider.sign(message_bytes))
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(f"key provider failed to sign: {e}") from e

        if len(signature_bytes) != SIGNATURE_LENGTH:
            raise SigningError(f"signature must be {SIGNATURE_LENGTH} bytes, got {len(signature_bytes)}")
        try:
            VerifyKey(bytes(payer)).verify(message_bytes, signature_bytes)
        except BadSignatureError as e:
            raise SigningError(f"signature does not verify against fee payer {payer}") from e

        signature = Signature.from_bytes(signature_bytes)
        transaction = Transaction.populate(message, [signature])
        raw = bytes(transaction)

        logger.debug(
            f"Assembled {instruction.opcode.name} tx {signature} "
            f"({len(raw)} bytes, blockhash {checkpoint.blockhash})"
        )
        return SignedEnvelope(raw=raw, signature=str(signature), checkpoint=checkpoint)


__all__ = ["TransactionAssembler", "DEFAULT_COMPUTE_UNIT_LIMIT"]
