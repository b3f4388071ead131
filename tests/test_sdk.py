"""
Ballot SDK Test Suite
Runs the client against the gateway app in-process.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import main
from ballot_sdk import LedgerAPIError, LedgerClient

from conftest import ALICE, BOB, JAN_1_2030

GATEWAY_URL = "http://testserver"


@pytest.fixture
def transport(service, monkeypatch):
    monkeypatch.setattr(main, "service", service)
    return TestClient(main.app)


@pytest.fixture
def alice(transport) -> LedgerClient:
    return LedgerClient(GATEWAY_URL, ALICE, client=transport)


@pytest.fixture
def bob(transport) -> LedgerClient:
    return LedgerClient(GATEWAY_URL + "/", BOB, client=transport)


def test_health(alice):
    assert alice.health()["status"] == "operational"


def test_full_round(alice, bob, clock):
    created = alice.create_proposal("Title", "Body", "01-01-2030", "02-01-2030")
    assert created.status == "Pending"
    assert created.creator == ALICE

    with pytest.raises(LedgerAPIError) as info:
        bob.vote(created.id, True, 1)
    assert info.value.kind == "VotingNotStarted"
    assert info.value.status_code == 409

    clock.now = JAN_1_2030
    assert bob.grant_tokens(2).balance == 5
    receipt = bob.vote(created.id, False, 5)
    assert receipt.balance == 0
    assert bob.my_vote(created.id).vote_power == 5
    assert alice.my_vote(created.id) is None

    results = alice.results(created.id)
    assert (results.votes_for, results.votes_against) == (0, 5)
    assert [p.id for p in alice.list_proposals("active")] == [created.id]
    assert alice.get_proposal(created.id).status == "Active"


def test_errors_carry_kind(alice, bob):
    created = alice.create_proposal("Title", "Body", "01-01-2030", "02-01-2030")

    with pytest.raises(LedgerAPIError) as info:
        bob.delete_proposal(created.id)
    assert info.value.kind == "NotAuthorized"

    with pytest.raises(LedgerAPIError) as info:
        alice.get_proposal(0)
    assert info.value.kind == "InvalidInput"

    alice.delete_proposal(created.id)
    with pytest.raises(LedgerAPIError) as info:
        alice.get_proposal(created.id)
    assert info.value.kind == "NotFound"


def test_update_and_balance(alice, bob):
    created = alice.create_proposal("Title", "Body", "01-01-2030", "02-01-2030")
    updated = bob.update_proposal(created.id, "New", "Text")
    assert (updated.title, updated.description) == ("New", "Text")
    assert bob.balance().balance == 3
