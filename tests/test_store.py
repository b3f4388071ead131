"""
Store + Record Test Suite
Tests the status function, record helpers, and the in-memory stores.
"""

from __future__ import annotations

import pytest

from ballot.backends import WriteBatch
from ballot.models import Proposal, ProposalStatus, ProposalView, Vote, proposal_status
from ballot.store import IdAllocator, ProposalStore, TokenLedger, VoteStore


def _proposal(proposal_id: int = 1, **overrides) -> Proposal:
    fields = dict(
        id=proposal_id, title="t", description="d", creator="alice",
        created_at=10, start_date=100, end_date=200,
    )
    fields.update(overrides)
    return Proposal(**fields)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("now,expected", [
    (0, ProposalStatus.PENDING),
    (99, ProposalStatus.PENDING),
    (100, ProposalStatus.ACTIVE),
    (150, ProposalStatus.ACTIVE),
    (200, ProposalStatus.ACTIVE),
    (201, ProposalStatus.ENDED),
])
def test_proposal_status(now, expected):
    assert proposal_status(now, 100, 200) == expected
    assert _proposal().status(now) == expected


def test_with_vote_accumulates():
    p = _proposal().with_vote(True, 2).with_vote(False, 5).with_vote(True, 1)
    assert (p.votes_for, p.votes_against) == (3, 5)


def test_records_are_immutable():
    p = _proposal()
    with pytest.raises(AttributeError):
        p.votes_for = 10
    assert p.with_text("new", "text").title == "new"
    assert p.title == "t"


def test_view_carries_derived_status():
    view = ProposalView.at(_proposal(), 150)
    assert view.to_dict()["status"] == "Active"
    assert view.to_dict()["id"] == 1


def test_encoded_size_grows_with_text():
    assert _proposal(description="x" * 500).encoded_size() > _proposal().encoded_size() + 490


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

def test_proposal_store_iterates_in_id_order():
    store = ProposalStore({3: _proposal(3), 1: _proposal(1)})
    store.apply(WriteBatch(proposals={2: _proposal(2)}))
    assert [p.id for p in store] == [1, 2, 3]

    store.apply(WriteBatch(deleted_proposals=[2]))
    assert 2 not in store
    assert len(store) == 2


def test_vote_store_refuses_overwrite():
    store = VoteStore()
    vote = Vote(voter="bob", proposal_id=1, vote_power=2, is_for=True)
    store.apply(WriteBatch(votes=[vote]))
    assert store.has_voted("bob", 1)
    assert store.get("bob", 1) == vote

    with pytest.raises(RuntimeError):
        store.apply(WriteBatch(votes=[Vote("bob", 1, 3, False)]))
    assert store.get("bob", 1).vote_power == 2


def test_token_ledger_materializes_default():
    ledger = TokenLedger(default_tokens=3)
    assert "carol" not in ledger
    assert ledger.balance_of("carol") == 3
    assert "carol" in ledger


def test_token_ledger_debit_and_credit_do_not_mutate():
    ledger = TokenLedger({"bob": 5})
    assert ledger.debited("bob", 2) == 3
    assert ledger.credited("bob", 4) == 9
    assert ledger.balance_of("bob") == 5

    with pytest.raises(ValueError):
        ledger.debited("bob", 6)
    with pytest.raises(ValueError):
        ledger.credited("bob", -1)
    with pytest.raises(ValueError):
        ledger.apply(WriteBatch(balances={"bob": -1}))


def test_id_allocator_never_goes_backwards():
    ids = IdAllocator(5)
    assert ids.peek_next() == 6
    ids.apply(WriteBatch(id_counter=6))
    ids.apply(WriteBatch(id_counter=2))
    assert ids.last_issued == 6
