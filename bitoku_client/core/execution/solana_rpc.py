"""
Solana JSON-RPC client.

Implements the four network calls the client needs (latest blockhash, send,
signature status, block height) plus account reads, over a shared
``httpx.AsyncClient``.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey

from ..errors import NetworkError, NetworkTransportError, RemoteRejection, StaleCheckpoint
from .models import Checkpoint, SignatureStatus
from .retry import RetryConfig, retry_transport

logger = logging.getLogger(__name__)

# JSON-RPC error codes worth retrying: node is behind / unhealthy
_TRANSIENT_RPC_CODES = {-32005}
_STALE_MARKERS = ("blockhash not found", "blockhashnotfound")


class LedgerNetwork(Protocol):
    """What the assembler, submitter and client need from the network."""

    async def get_latest_blockhash(self) -> Checkpoint:
        ...

    async def send_raw_transaction(self, raw: bytes) -> str:
        ...

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        ...

    async def get_block_height(self) -> int:
        ...

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        ...


@dataclass
class SolanaRpcConfig:
    """Configuration for Solana RPC connection."""
    rpc_url: str
    commitment: str = "confirmed"
    max_retries: int = 3
    retry_delay_s: float = 0.5
    timeout_s: float = 30.0
    skip_preflight: bool = False


class SolanaRpcClient:
    """
    Minimal Solana JSON-RPC client.

    Transport failures and HTTP 429/5xx are retried with exponential backoff;
    JSON-RPC errors are mapped onto StaleCheckpoint or RemoteRejection and
    surface immediately.

    Usage:
        async with SolanaRpcClient(SolanaRpcConfig(rpc_url="https://api.devnet.solana.com")) as rpc:
            checkpoint = await rpc.get_latest_blockhash()
    """

    def __init__(
        self,
        config: SolanaRpcConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._retry = RetryConfig(
            max_attempts=config.max_retries,
            initial_delay_seconds=config.retry_delay_s,
        )
        self._request_id = 0

    @property
    def commitment(self) -> str:
        return self._config.commitment

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _post(self, method: str, params: List[Any]) -> Any:
        """One JSON-RPC round trip, no retries."""
        client = await self._get_client()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        logger.debug(f"RPC {method} id={self._request_id}")

        try:
            response = await client.post(
                self._config.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            raise NetworkTransportError(f"{method}: {type(e).__name__}: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise NetworkTransportError(
                f"{method}: HTTP error {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise NetworkError(f"{method}: HTTP error {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkTransportError(f"{method}: malformed JSON response") from e

        if "error" in data:
            _raise_rpc_error(method, data["error"])

        return data.get("result")

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call, retrying transient transport errors."""
        return await retry_transport(lambda: self._post(method, params), self._retry, description=method)

    async def get_latest_blockhash(self) -> Checkpoint:
        result = await self._rpc_call(
            "getLatestBlockhash",
            [{"commitment": self._config.commitment}],
        )
        value = (result or {}).get("value") or {}
        blockhash = value.get("blockhash")
        if not blockhash:
            raise StaleCheckpoint("getLatestBlockhash returned no blockhash")
        return Checkpoint(
            blockhash=Hash.from_string(blockhash),
            last_valid_block_height=value.get("lastValidBlockHeight"),
        )

    async def send_raw_transaction(self, raw: bytes) -> str:
        """Send a signed transaction. Returns its signature; does not wait for confirmation."""
        options = {
            "encoding": "base64",
            "skipPreflight": self._config.skip_preflight,
            "preflightCommitment": self._config.commitment,
        }
        signature = await self._rpc_call(
            "sendTransaction",
            [base64.b64encode(raw).decode("ascii"), options],
        )
        if not signature:
            raise NetworkError("No signature returned from sendTransaction")
        return signature

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        """Status of one signature, or None while the cluster has not seen it."""
        result = await self._rpc_call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        values = (result or {}).get("value") or [None]
        if values[0] is None:
            return None
        return SignatureStatus.from_rpc(values[0])

    async def get_block_height(self) -> int:
        result = await self._rpc_call(
            "getBlockHeight",
            [{"commitment": self._config.commitment}],
        )
        return int(result)

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        """Raw account data, or None if the account does not exist."""
        result = await self._rpc_call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._config.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        data = value.get("data") or ["", "base64"]
        return base64.b64decode(data[0])


def _raise_rpc_error(method: str, error: Dict[str, Any]) -> None:
    code = error.get("code")
    message = str(error.get("message", error))
    data = error.get("data")

    tx_err = data.get("err") if isinstance(data, dict) else None
    if tx_err == "BlockhashNotFound" or any(marker in message.lower() for marker in _STALE_MARKERS):
        raise StaleCheckpoint(f"{method}: {message}")

    if tx_err is not None:
        raise RemoteRejection.from_transaction_error(tx_err, logs=data.get("logs"))

    if code in _TRANSIENT_RPC_CODES:
        raise NetworkTransportError(f"{method}: RPC error {code}: {message}")

    raise RemoteRejection(f"{method}: RPC error {code}: {message}", reason=error)


__all__ = [
    "LedgerNetwork",
    "SolanaRpcConfig",
    "SolanaRpcClient",
]
