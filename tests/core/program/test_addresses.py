"""
Tests for program-derived address derivation.
"""

import pytest
from solders.pubkey import Pubkey

from bitoku_client.core.errors import AddressDerivationFailure
from bitoku_client.core.program import addresses
from bitoku_client.core.program.addresses import (
    AddressDeriver,
    create_program_address,
    find_program_address,
)


def test_bookkeeper_derivation_is_deterministic(program_id):
    first = AddressDeriver(program_id).bookkeeper()
    second = AddressDeriver(program_id).bookkeeper()

    assert first == second
    assert bytes(first.address) == bytes(second.address)
    assert first.bump == second.bump


def test_bookkeeper_matches_reference_derivation(program_id):
    expected_address, expected_bump = Pubkey.find_program_address([b"bookkeeper"], program_id)

    derived = AddressDeriver(program_id).bookkeeper()

    assert derived.address == expected_address
    assert derived.bump == expected_bump


def test_request_account_matches_reference_derivation(program_id, caller):
    expected_address, expected_bump = Pubkey.find_program_address([b"request", bytes(caller)], program_id)

    derived = AddressDeriver(program_id).request_account(caller)

    assert derived.address == expected_address
    assert derived.bump == expected_bump


def test_derived_addresses_are_off_curve(program_id, caller):
    deriver = AddressDeriver(program_id)

    assert not deriver.bookkeeper().address.is_on_curve()
    assert not deriver.request_account(caller).address.is_on_curve()


def test_request_account_differs_per_caller(program_id):
    deriver = AddressDeriver(program_id)
    other = Pubkey(bytes([7]) * 32)

    assert deriver.request_account(other) != deriver.request_account(Pubkey(bytes([8]) * 32))


def test_program_id_changes_addresses(program_id):
    fixture_program = Pubkey(bytes([42]) * 32)

    assert AddressDeriver(program_id).bookkeeper() != AddressDeriver(fixture_program).bookkeeper()


def test_create_program_address_matches_found_bump(program_id):
    derived = find_program_address((b"bookkeeper",), program_id)

    assert create_program_address((b"bookkeeper", bytes([derived.bump])), program_id) == derived.address


def test_seed_longer_than_32_bytes_is_rejected(program_id):
    with pytest.raises(AddressDerivationFailure):
        AddressDeriver(program_id).derive(b"x" * 33)


def test_too_many_seeds_are_rejected(program_id):
    with pytest.raises(AddressDerivationFailure):
        AddressDeriver(program_id).derive(b"a", *([b"b"] * 15))


def test_fifteen_seeds_leave_room_for_the_bump(program_id):
    derived = AddressDeriver(program_id).derive(b"a", *([b"b"] * 14))

    assert not derived.address.is_on_curve()


def test_library_failure_is_address_derivation_failure(program_id, monkeypatch):
    class _NoBumpPubkey:
        @staticmethod
        def find_program_address(seeds, program_id):
            raise ValueError("Unable to find a viable program address bump seed")

    monkeypatch.setattr(addresses, "Pubkey", _NoBumpPubkey)

    with pytest.raises(AddressDerivationFailure):
        addresses.find_program_address((b"unreachable",), program_id)


def test_create_program_address_rejects_long_seed(program_id):
    with pytest.raises(AddressDerivationFailure):
        create_program_address((b"x" * 33,), program_id)
