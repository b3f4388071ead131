"""
Governance Service

Single entry point for every ledger request. The host supplies the
caller identity with each call and the current time through the
injected clock; the service validates the request against the stores,
collects the resulting mutations into one WriteBatch, commits it through
the backend, and only then applies it to the in-memory stores.

Every operation holds one re-entrant lock for its full duration, so
requests are serialized even when the host dispatches them from a
thread pool.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ballot.backends import LedgerBackend, MemoryBackend, PostgresBackend, WriteBatch
from ballot.config import LedgerConfig
from ballot.dates import DateCodec
from ballot.errors import (
    AlreadyExists,
    InsufficientTokens,
    InvalidInput,
    NotAuthorized,
    NotFound,
    ProposalAlreadyStarted,
    VotingEnded,
    VotingNotStarted,
)
from ballot.models import Proposal, ProposalStatus, ProposalView, Vote
from ballot.store import IdAllocator, ProposalStore, TokenLedger, VoteStore

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

# Balances and tallies are stored as Postgres BIGINT
MAX_TOKENS = 2**63 - 1


def system_clock() -> int:
    """Whole epoch seconds from the host clock."""
    return int(time.time())


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class GovernanceService:

    def __init__(
        self,
        proposals: ProposalStore,
        votes: VoteStore,
        tokens: TokenLedger,
        ids: IdAllocator,
        backend: LedgerBackend,
        clock: Clock = system_clock,
        config: LedgerConfig | None = None,
    ):
        self.config = config or LedgerConfig()
        self.proposals = proposals
        self.votes = votes
        self.tokens = tokens
        self.ids = ids
        self.dates = DateCodec(min_year=self.config.min_year)
        self._backend = backend
        self._clock = clock
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        backend: LedgerBackend | None = None,
        clock: Clock = system_clock,
        config: LedgerConfig | None = None,
    ) -> GovernanceService:
        """Load the backend's tables and wire up a service over them."""
        config = config or LedgerConfig()
        backend = backend if backend is not None else MemoryBackend()
        snapshot = backend.load()
        return cls(
            proposals=ProposalStore(snapshot.proposals),
            votes=VoteStore(snapshot.votes),
            tokens=TokenLedger(snapshot.balances, default_tokens=config.default_tokens),
            ids=IdAllocator(snapshot.id_counter),
            backend=backend,
            clock=clock,
            config=config,
        )

    @classmethod
    def from_config(cls, config: LedgerConfig, clock: Clock = system_clock) -> GovernanceService:
        if config.backend == "postgres":
            backend = PostgresBackend(config.db_config)
            backend.ensure_schema()
        else:
            backend = MemoryBackend()
        return cls.open(backend=backend, clock=clock, config=config)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def now(self) -> int:
        return self._clock()

    def _commit(self, batch: WriteBatch) -> None:
        # Durable first; memory only changes once the backend has accepted it
        self._backend.commit(batch)
        self.ids.apply(batch)
        self.proposals.apply(batch)
        self.votes.apply(batch)
        self.tokens.apply(batch)
        logger.info("Committed batch: %s", batch.describe())

    @staticmethod
    def _check_id(proposal_id) -> int:
        if not _is_int(proposal_id) or proposal_id <= 0:
            raise InvalidInput("Invalid proposal ID. ID cannot be 0.")
        return proposal_id

    def _require(self, proposal_id) -> Proposal:
        proposal = self.proposals.get(self._check_id(proposal_id))
        if proposal is None:
            raise NotFound("Proposal not found")
        return proposal

    def _check_text(self, title, description) -> None:
        if not isinstance(title, str) or not isinstance(description, str):
            raise InvalidInput("Title and description must be text")

    def _check_size(self, proposal: Proposal) -> None:
        size = proposal.encoded_size()
        if size > self.config.max_proposal_bytes:
            raise InvalidInput(
                f"Proposal is {size} bytes, limit is {self.config.max_proposal_bytes}"
            )

    # -----------------------------------------------------------------------
    # Proposals
    # -----------------------------------------------------------------------

    def create_proposal(
        self,
        caller: str,
        title: str,
        description: str,
        start_date: str,
        end_date: str,
    ) -> ProposalView:
        """
        Create a proposal whose voting window runs from ``start_date`` to
        ``end_date`` (both ``DD-MM-YYYY``).

        The start date may be today but not earlier; the end must be
        strictly after the start.
        """
        self._check_text(title, description)
        if not isinstance(start_date, str) or not isinstance(end_date, str):
            raise InvalidInput("Dates must be text in DD-MM-YYYY format")
        start_ts, start_y, start_m, start_d = self.dates.parse(start_date)
        end_ts, _, _, _ = self.dates.parse(end_date)
        if end_ts <= start_ts:
            raise InvalidInput("End date must be after start date")

        with self._lock:
            now = self.now()
            if (start_y, start_m, start_d) < self.dates.current_date(now):
                raise InvalidInput("Start date must not be in the past")

            proposal_id = self.ids.peek_next()
            if proposal_id in self.proposals:
                raise AlreadyExists("Proposal with this ID already exists")

            proposal = Proposal(
                id=proposal_id,
                title=title,
                description=description,
                creator=caller,
                created_at=now,
                start_date=start_ts,
                end_date=end_ts,
            )
            self._check_size(proposal)

            self._commit(WriteBatch(
                proposals={proposal_id: proposal},
                id_counter=proposal_id,
            ))
            logger.info("Proposal %d created by %s", proposal_id, caller)
            return ProposalView.at(proposal, now)

    def get_proposal(self, proposal_id: int) -> ProposalView:
        with self._lock:
            proposal = self._require(proposal_id)
            return ProposalView.at(proposal, self.now())

    def list_all(self) -> list[ProposalView]:
        with self._lock:
            now = self.now()
            return [ProposalView.at(p, now) for p in self.proposals]

    def list_active(self) -> list[ProposalView]:
        return [v for v in self.list_all() if v.status == ProposalStatus.ACTIVE]

    def list_inactive(self) -> list[ProposalView]:
        with self._lock:
            now = self.now()
            return [
                ProposalView.at(p, now)
                for p in self.proposals
                if p.end_date < now
            ]

    def update_proposal(
        self,
        caller: str,
        proposal_id: int,
        title: str,
        description: str,
    ) -> ProposalView:
        """Replace the title and description, keeping every other field.

        Any caller may update any proposal at any time; dates are not
        re-validated.
        """
        self._check_text(title, description)
        with self._lock:
            proposal = self._require(proposal_id).with_text(title, description)
            self._check_size(proposal)
            self._commit(WriteBatch(proposals={proposal.id: proposal}))
            logger.info("Proposal %d updated by %s", proposal.id, caller)
            return ProposalView.at(proposal, self.now())

    def delete_proposal(self, caller: str, proposal_id: int) -> None:
        with self._lock:
            proposal = self._require(proposal_id)
            if proposal.creator != caller:
                raise NotAuthorized("Only the creator can delete this proposal")
            if proposal.start_date <= self.now():
                raise ProposalAlreadyStarted(
                    "Cannot delete a proposal whose voting window has started"
                )
            self._commit(WriteBatch(deleted_proposals=[proposal.id]))
            logger.info("Proposal %d deleted by %s", proposal.id, caller)

    # -----------------------------------------------------------------------
    # Voting
    # -----------------------------------------------------------------------

    def vote(self, caller: str, proposal_id: int, is_for: bool, tokens: int) -> str:
        message, _ = self.cast_vote(caller, proposal_id, is_for, tokens)
        return message

    def cast_vote(
        self, caller: str, proposal_id: int, is_for: bool, tokens: int
    ) -> tuple[str, int]:
        """
        Commit ``tokens`` of the caller's balance for or against a proposal.
        Returns the confirmation message and the caller's balance after the
        debit.

        Checks run in a fixed order: id, token amount, balance, existence,
        voting window, prior vote. The tally increase, vote record and
        balance debit are committed together or not at all.
        """
        self._check_id(proposal_id)
        if not isinstance(is_for, bool):
            raise InvalidInput("is_for must be a boolean")
        if not _is_int(tokens) or tokens <= 0:
            raise InvalidInput("Vote must commit at least one token")

        with self._lock:
            balance = self.tokens.balance_of(caller)
            if balance < tokens:
                raise InsufficientTokens("Not enough tokens to vote")

            proposal = self._require(proposal_id)
            status = proposal.status(self.now())
            if status == ProposalStatus.PENDING:
                raise VotingNotStarted("Voting has not yet started for this proposal")
            if status == ProposalStatus.ENDED:
                raise VotingEnded("Voting has already ended for this proposal")

            if self.votes.has_voted(caller, proposal_id):
                raise AlreadyExists("User has already voted on this proposal")

            tallied = proposal.with_vote(is_for, tokens)
            if max(tallied.votes_for, tallied.votes_against) > MAX_TOKENS:
                raise InvalidInput("Vote would overflow the proposal tally")

            remaining = self.tokens.debited(caller, tokens)
            self._commit(WriteBatch(
                proposals={proposal_id: tallied},
                votes=[Vote(
                    voter=caller,
                    proposal_id=proposal_id,
                    vote_power=tokens,
                    is_for=is_for,
                )],
                balances={caller: remaining},
            ))
            logger.info(
                "Vote recorded: %s %s proposal %d with %d tokens",
                caller, "for" if is_for else "against", proposal_id, tokens,
            )
            return "Vote recorded successfully", remaining

    def get_results(self, proposal_id: int) -> tuple[int, int]:
        with self._lock:
            proposal = self._require(proposal_id)
            return proposal.votes_for, proposal.votes_against

    def get_vote(self, caller: str, proposal_id: int) -> Optional[Vote]:
        with self._lock:
            return self.votes.get(caller, self._check_id(proposal_id))

    # -----------------------------------------------------------------------
    # Tokens
    # -----------------------------------------------------------------------

    def grant_tokens(self, caller: str, amount: int) -> int:
        if not _is_int(amount) or amount < 0:
            raise InvalidInput("Token amount must be a non-negative integer")
        if amount > MAX_TOKENS:
            raise InvalidInput(f"Token amount must not exceed {MAX_TOKENS}")
        with self._lock:
            balance = self.tokens.credited(caller, amount)
            if balance > MAX_TOKENS:
                raise InvalidInput(f"Balance would exceed {MAX_TOKENS}")
            self._commit(WriteBatch(balances={caller: balance}))
            logger.info("Granted %d tokens to %s (balance %d)", amount, caller, balance)
            return balance

    def get_balance(self, caller: str) -> int:
        with self._lock:
            return self.tokens.balance_of(caller)
