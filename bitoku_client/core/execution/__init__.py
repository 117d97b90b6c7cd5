"""
Transaction Execution Layer

Provides the infrastructure for getting Bitoku instructions applied on-chain:
- TransactionAssembler: compute budget + instruction, stamped, signed, serialized
- Submitter: sends envelopes and polls for confirmation
- SolanaRpcClient: JSON-RPC transport used by both
- NaclKeyProvider: ed25519 signer behind the KeyProvider protocol

Usage:
    from bitoku_client.core.execution import (
        NaclKeyProvider,
        SolanaRpcClient,
        SolanaRpcConfig,
        Submitter,
        TransactionAssembler,
    )

    rpc = SolanaRpcClient(SolanaRpcConfig(rpc_url="https://api.devnet.solana.com"))
    assembler = TransactionAssembler(NaclKeyProvider.from_keypair_file("~/.config/solana/id.json"))
    envelope = assembler.assemble(instruction, await rpc.get_latest_blockhash())
    result = await Submitter(rpc).submit(envelope)
"""

from .models import (
    Commitment,
    SubmissionStatus,
    Checkpoint,
    SignedEnvelope,
    SignatureStatus,
    SubmissionResult,
)

from .keys import (
    KeyProvider,
    NaclKeyProvider,
)

from .retry import (
    RetryConfig,
    retry_transport,
)

from .solana_rpc import (
    LedgerNetwork,
    SolanaRpcClient,
    SolanaRpcConfig,
)

from .assembler import (
    TransactionAssembler,
    DEFAULT_COMPUTE_UNIT_LIMIT,
)

from .submitter import (
    Submitter,
)

__all__ = [
    # Models
    "Commitment",
    "SubmissionStatus",
    "Checkpoint",
    "SignedEnvelope",
    "SignatureStatus",
    "SubmissionResult",
    # Keys
    "KeyProvider",
    "NaclKeyProvider",
    # Retry
    "RetryConfig",
    "retry_transport",
    # RPC
    "LedgerNetwork",
    "SolanaRpcClient",
    "SolanaRpcConfig",
    # Assembly and submission
    "TransactionAssembler",
    "DEFAULT_COMPUTE_UNIT_LIMIT",
    "Submitter",
]
