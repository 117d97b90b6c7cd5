from typing import Dict, List, Optional, Set

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from bitoku_client.config import DEFAULT_PROGRAM_ID
from bitoku_client.core.errors import StaleCheckpoint
from bitoku_client.core.execution.keys import NaclKeyProvider
from bitoku_client.core.execution.models import Checkpoint, SignatureStatus


def make_checkpoint(n: int, last_valid_block_height: Optional[int] = 1_000) -> Checkpoint:
    return Checkpoint(blockhash=Hash(bytes([n]) * 32), last_valid_block_height=last_valid_block_height)


class FakeNetwork:
    """In-memory ledger network.

    ``checkpoints`` are handed out in order (the last one repeats; None stands
    for a node that returned no blockhash), ``expired`` blockhashes are rejected on send, and ``statuses`` is the
    script of poll answers (the last one repeats). An Exception in the script
    is raised instead of returned.
    """

    def __init__(self) -> None:
        self.checkpoints: List[Optional[Checkpoint]] = [make_checkpoint(1)]
        self.expired: Set[Hash] = set()
        self.statuses: list = [SignatureStatus(slot=10, confirmations=1, confirmation_status="confirmed")]
        self.block_height = 0
        self.accounts: Dict[Pubkey, bytes] = {}
        self.sent: List[Transaction] = []
        self.blockhash_calls = 0
        self.status_calls = 0
        self.closed = False

    async def get_latest_blockhash(self) -> Checkpoint:
        index = min(self.blockhash_calls, len(self.checkpoints) - 1)
        self.blockhash_calls += 1
        checkpoint = self.checkpoints[index]
        if checkpoint is None:
            raise StaleCheckpoint("getLatestBlockhash returned no blockhash")
        return checkpoint

    async def send_raw_transaction(self, raw: bytes) -> str:
        tx = Transaction.from_bytes(raw)
        if tx.message.recent_blockhash in self.expired:
            raise StaleCheckpoint("Transaction simulation failed: Blockhash not found")
        self.sent.append(tx)
        return str(tx.signatures[0])

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        index = min(self.status_calls, len(self.statuses) - 1)
        self.status_calls += 1
        answer = self.statuses[index]
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def get_block_height(self) -> int:
        return self.block_height

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        return self.accounts.get(address)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def program_id() -> Pubkey:
    return Pubkey.from_string(DEFAULT_PROGRAM_ID)


@pytest.fixture
def key_provider() -> NaclKeyProvider:
    return NaclKeyProvider.from_seed(bytes(range(32)))


@pytest.fixture
def caller(key_provider: NaclKeyProvider) -> Pubkey:
    return key_provider.public_key


@pytest.fixture(name="make_checkpoint")
def make_checkpoint_fixture():
    return make_checkpoint


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()
