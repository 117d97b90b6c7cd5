"""
Submission and confirmation of signed envelopes.
"""

import asyncio
import logging
import time
from typing import Optional, Union

from ..errors import NetworkTransportError, RemoteRejection, StaleCheckpoint
from .models import Commitment, SignedEnvelope, SubmissionResult, SubmissionStatus
from .solana_rpc import LedgerNetwork

logger = logging.getLogger(__name__)


class Submitter:
    """
    Sends an envelope and waits for the cluster's verdict.

    Handles:
    - Sending the raw transaction (returns the signature immediately)
    - Polling signature status with exponential backoff
    - Detecting blockhash expiry while the signature is unseen
    - Bounding the wait by a timeout; a timeout yields UNKNOWN, not FAILED

    Usage:
        submitter = Submitter(rpc, commitment="confirmed", timeout_s=60)
        result = await submitter.submit(envelope)
        result.raise_for_status()
    """

    def __init__(
        self,
        network: LedgerNetwork,
        commitment: Union[Commitment, str] = Commitment.CONFIRMED,
        timeout_s: float = 60.0,
        poll_interval_s: float = 1.0,
        max_poll_interval_s: float = 5.0,
    ):
        self.network = network
        self.commitment = Commitment(commitment)
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.max_poll_interval_s = max_poll_interval_s

    async def submit(self, envelope: SignedEnvelope) -> SubmissionResult:
        """
        Send ``envelope`` and wait for confirmation.

        Raises:
            StaleCheckpoint: the blockhash expired before the transaction landed
            NetworkTransportError: the send itself kept failing
            RemoteRejection: the node refused the transaction at preflight
        """
        try:
            signature = await self.network.send_raw_transaction(envelope.raw)
        except RemoteRejection as e:
            # A retried send whose first attempt already landed
            if not e.already_processed:
                raise
            logger.info(f"Transaction {envelope.signature} already processed, polling its status")
            signature = envelope.signature
        if signature != envelope.signature:
            logger.warning(f"Node returned signature {signature}, expected {envelope.signature}")
        logger.info(f"Sent transaction {signature}")
        return await self.wait_for_confirmation(
            signature,
            last_valid_block_height=envelope.checkpoint.last_valid_block_height,
        )

    async def wait_for_confirmation(
        self,
        signature: str,
        last_valid_block_height: Optional[int] = None,
    ) -> SubmissionResult:
        start_time = time.monotonic()
        interval = self.poll_interval_s

        while (time.monotonic() - start_time) < self.timeout_s:
            try:
                status = await self.network.get_signature_status(signature)
            except NetworkTransportError as e:
                logger.warning(f"Status poll for {signature} failed: {e}. Repolling")
                status = None
                transient = True
            else:
                transient = False

            if status is not None:
                if status.failed:
                    rejection = RemoteRejection.from_transaction_error(status.err, signature=signature)
                    logger.info(f"Transaction {signature} failed: {rejection.message}")
                    return SubmissionResult(
                        signature=signature,
                        status=SubmissionStatus.FAILED,
                        slot=status.slot,
                        error=rejection.message,
                        rejection=rejection,
                    )
                if status.reaches(self.commitment):
                    logger.info(f"Transaction {signature} reached {self.commitment.value} in slot {status.slot}")
                    return SubmissionResult(
                        signature=signature,
                        status=SubmissionStatus.CONFIRMED,
                        slot=status.slot,
                    )
            elif not transient and last_valid_block_height is not None:
                await self._check_expiry(signature, last_valid_block_height)

            remaining = self.timeout_s - (time.monotonic() - start_time)
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))
            # Exponential backoff, capped
            interval = min(interval * 1.5, self.max_poll_interval_s)

        logger.warning(f"Transaction {signature} not confirmed after {self.timeout_s:.0f}s")
        return SubmissionResult(
            signature=signature,
            status=SubmissionStatus.UNKNOWN,
            error="Transaction confirmation timed out",
        )

    async def _check_expiry(self, signature: str, last_valid_block_height: int) -> None:
        try:
            height = await self.network.get_block_height()
        except NetworkTransportError as e:
            logger.warning(f"Block height check failed: {e}")
            return
        if height > last_valid_block_height:
            raise StaleCheckpoint(
                f"blockhash for {signature} expired at height {last_valid_block_height} "
                f"(current {height}) before the transaction was seen"
            )


__all__ = ["Submitter"]
