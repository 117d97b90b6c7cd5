"""
Tests for submission and confirmation polling.
"""

from unittest.mock import AsyncMock

import pytest

from bitoku_client.core.errors import (
    ConfirmationTimeout,
    NetworkTransportError,
    ProgramErrorCode,
    RemoteRejection,
    StaleCheckpoint,
)
from bitoku_client.core.execution.assembler import TransactionAssembler
from bitoku_client.core.execution.models import SignatureStatus, SubmissionStatus
from bitoku_client.core.execution.submitter import Submitter
from bitoku_client.core.program.addresses import AddressDeriver
from bitoku_client.core.program.instructions import InstructionEncoder


@pytest.fixture
def envelope(program_id, key_provider, make_checkpoint):
    instruction = InstructionEncoder(AddressDeriver(program_id)).delete_client(key_provider.public_key)
    return TransactionAssembler(key_provider).assemble(instruction, make_checkpoint(1, last_valid_block_height=100))


def _submitter(network, **kwargs):
    kwargs.setdefault("timeout_s", 1.0)
    kwargs.setdefault("poll_interval_s", 0.001)
    kwargs.setdefault("max_poll_interval_s", 0.005)
    return Submitter(network, **kwargs)


@pytest.mark.asyncio
async def test_confirmed_transaction(network, envelope):
    network.statuses = [None, None, SignatureStatus(slot=42, confirmations=3, confirmation_status="confirmed")]

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED
    assert result.ok
    assert result.signature == envelope.signature
    assert result.slot == 42
    assert len(network.sent) == 1
    assert result.raise_for_status() is result


@pytest.mark.asyncio
async def test_on_chain_failure_is_reported_with_program_error(network, envelope):
    network.statuses = [
        SignatureStatus(slot=5, confirmation_status="confirmed", err={"InstructionError": [1, {"Custom": 4}]}),
    ]

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.FAILED
    assert result.rejection.program_error == ProgramErrorCode.UNREGISTERED_CLIENT
    assert result.rejection.instruction_index == 1
    with pytest.raises(RemoteRejection):
        result.raise_for_status()


@pytest.mark.asyncio
async def test_poll_that_never_resolves_is_unknown(network, envelope):
    network.statuses = [None]

    result = await _submitter(network, timeout_s=0.05).submit(envelope)

    assert result.status == SubmissionStatus.UNKNOWN
    assert not result.ok
    assert network.status_calls > 1
    with pytest.raises(ConfirmationTimeout) as exc_info:
        result.raise_for_status()
    assert exc_info.value.signature == envelope.signature


@pytest.mark.asyncio
async def test_processed_status_does_not_satisfy_confirmed(network, envelope):
    network.statuses = [SignatureStatus(slot=1, confirmations=0, confirmation_status="processed")]

    result = await _submitter(network, timeout_s=0.05).submit(envelope)

    assert result.status == SubmissionStatus.UNKNOWN


@pytest.mark.asyncio
async def test_finalized_commitment_waits_for_finalization(network, envelope):
    network.statuses = [
        SignatureStatus(slot=1, confirmations=1, confirmation_status="confirmed"),
        SignatureStatus(slot=1, confirmations=None, confirmation_status="finalized"),
    ]

    result = await _submitter(network, commitment="finalized").submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED
    assert network.status_calls == 2


@pytest.mark.asyncio
async def test_transient_poll_errors_are_repolled(network, envelope):
    network.statuses = [
        NetworkTransportError("connection reset"),
        NetworkTransportError("connection reset"),
        SignatureStatus(slot=9, confirmation_status="finalized"),
    ]

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED
    assert network.status_calls == 3


@pytest.mark.asyncio
async def test_expired_checkpoint_on_send_is_stale(network, envelope):
    network.expired.add(envelope.checkpoint.blockhash)

    with pytest.raises(StaleCheckpoint):
        await _submitter(network).submit(envelope)
    assert network.sent == []


@pytest.mark.asyncio
async def test_block_height_past_validity_is_stale(network, envelope):
    network.statuses = [None]
    network.block_height = 101

    with pytest.raises(StaleCheckpoint):
        await _submitter(network).submit(envelope)


@pytest.mark.asyncio
async def test_block_height_within_validity_keeps_polling(network, envelope):
    network.statuses = [None, SignatureStatus(slot=3, confirmation_status="confirmed")]
    network.block_height = 100

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED


def test_status_without_confirmation_level_from_old_nodes():
    assert SignatureStatus(slot=1, confirmations=None).reaches("finalized")
    assert SignatureStatus(slot=1, confirmations=2).reaches("confirmed")
    assert not SignatureStatus(slot=1, confirmations=2).reaches("finalized")


@pytest.mark.asyncio
async def test_block_height_errors_do_not_abort_polling(envelope):
    network = AsyncMock()
    network.send_raw_transaction.return_value = envelope.signature
    network.get_signature_status.side_effect = [None, SignatureStatus(slot=4, confirmation_status="confirmed")]
    network.get_block_height.side_effect = NetworkTransportError("timeout")

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED
    network.send_raw_transaction.assert_awaited_once_with(envelope.raw)
    network.get_block_height.assert_awaited_once()


@pytest.mark.asyncio
async def test_already_processed_send_polls_the_envelope_signature(envelope):
    network = AsyncMock()
    network.send_raw_transaction.side_effect = RemoteRejection("transaction failed: AlreadyProcessed", reason="AlreadyProcessed")
    network.get_signature_status.return_value = SignatureStatus(slot=7, confirmation_status="confirmed")

    result = await _submitter(network).submit(envelope)

    assert result.status == SubmissionStatus.CONFIRMED
    network.get_signature_status.assert_awaited_with(envelope.signature)


@pytest.mark.asyncio
async def test_other_preflight_rejections_propagate(envelope):
    network = AsyncMock()
    network.send_raw_transaction.side_effect = RemoteRejection.from_transaction_error(
        {"InstructionError": [1, {"Custom": 4}]}
    )

    with pytest.raises(RemoteRejection):
        await _submitter(network).submit(envelope)
    network.get_signature_status.assert_not_awaited()
