"""
Ballot Ledger: time-boxed proposals with token-weighted voting.
"""

from ballot.config import LedgerConfig
from ballot.errors import ErrorKind, LedgerError
from ballot.models import Proposal, ProposalStatus, ProposalView, Vote
from ballot.service import GovernanceService

__all__ = [
    "ErrorKind",
    "GovernanceService",
    "LedgerConfig",
    "LedgerError",
    "Proposal",
    "ProposalStatus",
    "ProposalView",
    "Vote",
]
