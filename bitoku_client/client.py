"""
High-level client for the Bitoku agent program.

Composes address derivation, instruction encoding, transaction assembly and
submission, and owns the retry on expired blockhashes. Operations on one
client run strictly one after another: each is confirmed (or definitively
fails, or times out) before the next one is signed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

import httpx
import structlog
from solders.pubkey import Pubkey

from .config import Settings, settings as default_settings
from .core.errors import StaleCheckpoint
from .core.execution.assembler import DEFAULT_COMPUTE_UNIT_LIMIT, TransactionAssembler
from .core.execution.keys import KeyProvider, NaclKeyProvider
from .core.execution.models import Commitment, SubmissionResult
from .core.execution.solana_rpc import LedgerNetwork, SolanaRpcClient, SolanaRpcConfig
from .core.execution.submitter import Submitter
from .core.program.addresses import AddressDeriver, DerivedAddress
from .core.program.instructions import EncodedInstruction, InstructionEncoder, RequestType, SendRequestArgs
from .core.program.state import BookKeeper, RequestRecord

logger = logging.getLogger(__name__)


class BitokuClient:
    """
    Issues Bitoku operations for one caller key.

    Usage:
        async with BitokuClient.from_settings() as client:
            await client.register_client()
            result = await client.send_request(RequestType.CREATE_BUCKET, "photos")
            result.raise_for_status()
    """

    def __init__(
        self,
        network: LedgerNetwork,
        key_provider: KeyProvider,
        program_id: Pubkey,
        *,
        compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
        commitment: Union[Commitment, str] = Commitment.CONFIRMED,
        confirm_timeout_s: float = 60.0,
        poll_interval_s: float = 1.0,
        max_stale_retries: int = 3,
    ):
        self.network = network
        self.key_provider = key_provider
        self.deriver = AddressDeriver(program_id)
        self.encoder = InstructionEncoder(self.deriver)
        self.assembler = TransactionAssembler(key_provider, compute_unit_limit=compute_unit_limit)
        self.submitter = Submitter(
            network,
            commitment=commitment,
            timeout_s=confirm_timeout_s,
            poll_interval_s=poll_interval_s,
        )
        self.max_stale_retries = max_stale_retries
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        key_provider: Optional[KeyProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "BitokuClient":
        """Build a client with a Solana RPC network from settings (default: environment)."""
        settings = settings or default_settings
        network = SolanaRpcClient(
            SolanaRpcConfig(
                rpc_url=settings.rpc_url,
                commitment=settings.commitment,
                max_retries=settings.rpc_max_retries,
                retry_delay_s=settings.rpc_retry_delay_seconds,
                timeout_s=settings.rpc_timeout_seconds,
            ),
            transport=transport,
        )
        return cls(
            network,
            key_provider or NaclKeyProvider.from_keypair_file(settings.keypair_path),
            settings.program_pubkey,
            compute_unit_limit=settings.compute_unit_limit,
            commitment=settings.commitment,
            confirm_timeout_s=settings.confirm_timeout_seconds,
            poll_interval_s=settings.poll_interval_seconds,
            max_stale_retries=settings.max_stale_retries,
        )

    @property
    def caller(self) -> Pubkey:
        return self.key_provider.public_key

    @property
    def program_id(self) -> Pubkey:
        return self.deriver.program_id

    def bookkeeper_address(self) -> DerivedAddress:
        return self.deriver.bookkeeper()

    def request_address(self) -> DerivedAddress:
        return self.deriver.request_account(self.caller)

    # Operations

    async def init_bookkeeper(self) -> SubmissionResult:
        """Create the program's global bookkeeper account (once per deployment)."""
        return await self.execute(self.encoder.init_bookkeeper(self.caller))

    async def register_client(self) -> SubmissionResult:
        """Create this caller's request account and take a client id."""
        return await self.execute(self.encoder.create_client_account(self.caller))

    async def remove_client(self, client_id: int = 0) -> SubmissionResult:
        return await self.execute(self.encoder.delete_client(self.caller, client_id))

    async def send_request(
        self,
        request_type: Union[RequestType, int],
        name: Union[str, bytes],
        *,
        file_id: int = 0,
        position: int = 0,
        data: Union[str, bytes] = b"",
        client_id: int = 0,
    ) -> SubmissionResult:
        args = SendRequestArgs(
            request_type=request_type,
            name=name.encode("utf-8") if isinstance(name, str) else bytes(name),
            file_id=file_id,
            position=position,
            data=data.encode("utf-8") if isinstance(data, str) else bytes(data),
            client_id=client_id,
        )
        return await self.execute(self.encoder.send_request(self.caller, args))

    async def execute(self, instruction: EncodedInstruction) -> SubmissionResult:
        """
        Sign, submit and confirm one instruction.

        An expired blockhash is recovered by fetching a fresh one and signing
        again, up to ``max_stale_retries`` times. Every other error propagates.
        """
        async with self._lock:
            with structlog.contextvars.bound_contextvars(
                operation=instruction.opcode.name,
                caller=str(self.caller),
            ):
                return await self._execute(instruction)

    async def _execute(self, instruction: EncodedInstruction) -> SubmissionResult:
        last_error: Optional[StaleCheckpoint] = None
        attempts = self.max_stale_retries + 1

        for attempt in range(attempts):
            try:
                checkpoint = await self.network.get_latest_blockhash()
                envelope = self.assembler.assemble(instruction, checkpoint)
                result = await self.submitter.submit(envelope)
            except StaleCheckpoint as e:
                last_error = e
                logger.warning(
                    f"{instruction.opcode.name}: no usable blockhash "
                    f"(attempt {attempt + 1}/{attempts}): {e}"
                )
                continue
            result.attempts = attempt + 1
            return result

        raise last_error or StaleCheckpoint("blockhash expired on every attempt")

    # Account reads

    async def fetch_bookkeeper(self) -> Optional[BookKeeper]:
        raw = await self.network.get_account_data(self.bookkeeper_address().address)
        return BookKeeper.decode(raw) if raw is not None else None

    async def fetch_request(self) -> Optional[RequestRecord]:
        raw = await self.network.get_account_data(self.request_address().address)
        return RequestRecord.decode(raw) if raw is not None else None

    async def close(self) -> None:
        close = getattr(self.network, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "BitokuClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["BitokuClient"]
