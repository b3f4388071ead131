"""
Ledger Errors

Every failure a ledger operation can report. Each error carries a stable
``kind`` tag that callers branch on, plus a human-readable message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_AUTHORIZED = "NotAuthorized"
    VOTING_ENDED = "VotingEnded"
    VOTING_NOT_STARTED = "VotingNotStarted"
    INVALID_INPUT = "InvalidInput"
    PROPOSAL_ALREADY_STARTED = "ProposalAlreadyStarted"
    INSUFFICIENT_TOKENS = "InsufficientTokens"


class LedgerError(Exception):
    """Base class for all ledger failures."""
    kind: ErrorKind

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind.value, "msg": self.msg}


class NotFound(LedgerError):
    kind = ErrorKind.NOT_FOUND


class AlreadyExists(LedgerError):
    kind = ErrorKind.ALREADY_EXISTS


class NotAuthorized(LedgerError):
    kind = ErrorKind.NOT_AUTHORIZED


class VotingEnded(LedgerError):
    kind = ErrorKind.VOTING_ENDED


class VotingNotStarted(LedgerError):
    kind = ErrorKind.VOTING_NOT_STARTED


class InvalidInput(LedgerError):
    kind = ErrorKind.INVALID_INPUT


class ProposalAlreadyStarted(LedgerError):
    kind = ErrorKind.PROPOSAL_ALREADY_STARTED


class InsufficientTokens(LedgerError):
    kind = ErrorKind.INSUFFICIENT_TOKENS

