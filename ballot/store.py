"""
Ledger Stores

In-memory views over the four ledger tables. Each store exclusively owns
its records. Reads go straight to the store; writes arrive only through
``apply()`` with a batch the backend has already committed.
"""

from __future__ import annotations

from typing import Iterator, Optional

from ballot.backends import WriteBatch
from ballot.models import Proposal, Vote


class IdAllocator:
    """Hands out proposal ids. Ids start at 1 and are never reused."""

    def __init__(self, last_issued: int = 0):
        self._last_issued = last_issued

    @property
    def last_issued(self) -> int:
        return self._last_issued

    def peek_next(self) -> int:
        return self._last_issued + 1

    def apply(self, batch: WriteBatch) -> None:
        if batch.id_counter is not None:
            self._last_issued = max(self._last_issued, batch.id_counter)


class ProposalStore:
    """Ordered mapping proposal id -> Proposal."""

    def __init__(self, records: dict[int, Proposal] | None = None):
        self._records: dict[int, Proposal] = dict(records or {})

    def get(self, proposal_id: int) -> Optional[Proposal]:
        return self._records.get(proposal_id)

    def __contains__(self, proposal_id: int) -> bool:
        return proposal_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Proposal]:
        for proposal_id in sorted(self._records):
            yield self._records[proposal_id]

    def apply(self, batch: WriteBatch) -> None:
        for proposal_id in batch.deleted_proposals:
            self._records.pop(proposal_id, None)
        self._records.update(batch.proposals)


class VoteStore:
    """Ordered mapping (voter, proposal id) -> Vote. One vote per key."""

    def __init__(self, records: dict[tuple[str, int], Vote] | None = None):
        self._records: dict[tuple[str, int], Vote] = dict(records or {})

    def get(self, voter: str, proposal_id: int) -> Optional[Vote]:
        return self._records.get((voter, proposal_id))

    def has_voted(self, voter: str, proposal_id: int) -> bool:
        return (voter, proposal_id) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Vote]:
        for key in sorted(self._records):
            yield self._records[key]

    def apply(self, batch: WriteBatch) -> None:
        for vote in batch.votes:
            if vote.key in self._records:
                raise RuntimeError(f"vote {vote.key} applied twice")
            self._records[vote.key] = vote


class TokenLedger:
    """
    Per-user voting token balances.

    A user who has never been seen holds ``default_tokens``; the entry is
    materialized on first access rather than at startup.
    """

    def __init__(self, balances: dict[str, int] | None = None, default_tokens: int = 3):
        self._balances: dict[str, int] = dict(balances or {})
        self.default_tokens = default_tokens

    def balance_of(self, owner: str) -> int:
        return self._balances.setdefault(owner, self.default_tokens)

    def debited(self, owner: str, amount: int) -> int:
        """Balance after removing ``amount``. Does not mutate."""
        balance = self.balance_of(owner)
        if amount > balance:
            raise ValueError(f"debit of {amount} exceeds balance {balance}")
        return balance - amount

    def credited(self, owner: str, amount: int) -> int:
        """Balance after adding ``amount``. Does not mutate."""
        if amount < 0:
            raise ValueError("credit amount must be non-negative")
        return self.balance_of(owner) + amount

    def __contains__(self, owner: str) -> bool:
        return owner in self._balances

    def apply(self, batch: WriteBatch) -> None:
        for owner, balance in batch.balances.items():
            if balance < 0:
                raise ValueError(f"negative balance for {owner}")
            self._balances[owner] = balance
