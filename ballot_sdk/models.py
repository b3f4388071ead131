"""
Ballot SDK: Data Models
"""

from __future__ import annotations

from pydantic import BaseModel


class ProposalResult(BaseModel):
    """A proposal as returned by the gateway, status derived at read time."""
    id: int
    title: str
    description: str
    creator: str
    created_at: int
    start_date: int
    end_date: int
    start_date_text: str
    end_date_text: str
    votes_for: int
    votes_against: int
    status: str             # Pending | Active | Ended


class VoteReceipt(BaseModel):
    """Result of a POST /proposals/{id}/vote call."""
    message: str
    proposal_id: int
    balance: int            # caller's balance after the debit


class VoteRecord(BaseModel):
    voter: str
    proposal_id: int
    vote_power: int
    is_for: bool


class Results(BaseModel):
    proposal_id: int
    votes_for: int
    votes_against: int


class Balance(BaseModel):
    owner: str
    balance: int
