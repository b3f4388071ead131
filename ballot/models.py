"""
Ledger Records

Proposal and Vote records, plus the time-derived proposal lifecycle.
A proposal's status is never stored: it is recomputed from the clock and
the voting window every time it is read.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from enum import Enum

# Anonymous caller identity used when the host supplies none
ANONYMOUS = "2vxsx-fae"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class ProposalStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    ENDED = "Ended"


def proposal_status(now: int, start_date: int, end_date: int) -> ProposalStatus:
    """Pure status function: Pending before the window, Ended after it."""
    if now < start_date:
        return ProposalStatus.PENDING
    if now <= end_date:
        return ProposalStatus.ACTIVE
    return ProposalStatus.ENDED


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Proposal:
    id: int
    title: str
    description: str
    creator: str
    created_at: int
    start_date: int
    end_date: int
    votes_for: int = 0
    votes_against: int = 0

    def status(self, now: int) -> ProposalStatus:
        return proposal_status(now, self.start_date, self.end_date)

    def with_vote(self, is_for: bool, tokens: int) -> Proposal:
        if is_for:
            return replace(self, votes_for=self.votes_for + tokens)
        return replace(self, votes_against=self.votes_against + tokens)

    def with_text(self, title: str, description: str) -> Proposal:
        return replace(self, title=title, description=description)

    def to_dict(self) -> dict:
        return asdict(self)

    def encoded_size(self) -> int:
        """Size in bytes of the canonical JSON encoding."""
        return len(json.dumps(self.to_dict(), sort_keys=True).encode())


@dataclass(frozen=True)
class Vote:
    voter: str
    proposal_id: int
    vote_power: int
    is_for: bool

    @property
    def key(self) -> tuple[str, int]:
        return (self.voter, self.proposal_id)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProposalView:
    """A proposal together with the status derived at read time."""
    proposal: Proposal
    status: ProposalStatus

    @classmethod
    def at(cls, proposal: Proposal, now: int) -> ProposalView:
        return cls(proposal=proposal, status=proposal.status(now))

    def to_dict(self) -> dict:
        return {**self.proposal.to_dict(), "status": self.status.value}
