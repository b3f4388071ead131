"""
Storage Backends

Durable home for the four ledger tables: proposals, votes, token
balances and the id counter. A backend loads a full snapshot at startup
and afterwards only receives write batches; each batch is committed as
a single transaction or not at all.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import psycopg2
from psycopg2 import errors as pg_errors

from ballot.errors import AlreadyExists
from ballot.models import Proposal, Vote

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Snapshot + batch
# ---------------------------------------------------------------------------

@dataclass
class LedgerSnapshot:
    proposals: dict[int, Proposal] = field(default_factory=dict)
    votes: dict[tuple[str, int], Vote] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)
    id_counter: int = 0

    def copy(self) -> LedgerSnapshot:
        # Records are frozen, so copying the containers is enough
        return LedgerSnapshot(
            proposals=dict(self.proposals),
            votes=dict(self.votes),
            balances=dict(self.balances),
            id_counter=self.id_counter,
        )


@dataclass
class WriteBatch:
    """Every mutation produced by one request."""
    proposals: dict[int, Proposal] = field(default_factory=dict)
    deleted_proposals: list[int] = field(default_factory=list)
    votes: list[Vote] = field(default_factory=list)
    balances: dict[str, int] = field(default_factory=dict)
    id_counter: Optional[int] = None

    def describe(self) -> str:
        return (
            f"proposals={sorted(self.proposals)} "
            f"deleted={self.deleted_proposals} "
            f"votes={[v.key for v in self.votes]} "
            f"balances={sorted(self.balances)} "
            f"id_counter={self.id_counter}"
        )


class LedgerBackend(Protocol):
    def load(self) -> LedgerSnapshot: ...

    def commit(self, batch: WriteBatch) -> None: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class MemoryBackend:
    """Keeps the committed state in process memory."""

    def __init__(self, snapshot: LedgerSnapshot | None = None):
        self._state = snapshot.copy() if snapshot else LedgerSnapshot()
        self.commits = 0

    def load(self) -> LedgerSnapshot:
        return self._state.copy()

    def commit(self, batch: WriteBatch) -> None:
        for vote in batch.votes:
            if vote.key in self._state.votes:
                raise AlreadyExists("User has already voted on this proposal")

        state = self._state
        for proposal_id in batch.deleted_proposals:
            state.proposals.pop(proposal_id, None)
        state.proposals.update(batch.proposals)
        for vote in batch.votes:
            state.votes[vote.key] = vote
        state.balances.update(batch.balances)
        if batch.id_counter is not None:
            state.id_counter = max(state.id_counter, batch.id_counter)
        self.commits += 1


# ---------------------------------------------------------------------------
# PostgreSQL backend
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS proposals (
    id            BIGINT PRIMARY KEY CHECK (id > 0),
    title         TEXT NOT NULL,
    description   TEXT NOT NULL,
    creator       TEXT NOT NULL,
    created_at    BIGINT NOT NULL,
    start_date    BIGINT NOT NULL,
    end_date      BIGINT NOT NULL,
    votes_for     BIGINT NOT NULL DEFAULT 0 CHECK (votes_for >= 0),
    votes_against BIGINT NOT NULL DEFAULT 0 CHECK (votes_against >= 0),
    CHECK (end_date > start_date)
);
CREATE TABLE IF NOT EXISTS votes (
    voter       TEXT NOT NULL,
    proposal_id BIGINT NOT NULL,
    vote_power  BIGINT NOT NULL CHECK (vote_power > 0),
    is_for      BOOLEAN NOT NULL,
    PRIMARY KEY (voter, proposal_id)
);
CREATE TABLE IF NOT EXISTS token_balances (
    owner   TEXT PRIMARY KEY,
    balance BIGINT NOT NULL CHECK (balance >= 0)
);
CREATE TABLE IF NOT EXISTS id_counter (
    singleton BOOLEAN PRIMARY KEY DEFAULT TRUE CHECK (singleton),
    value     BIGINT NOT NULL
);
"""

_PROPOSAL_COLUMNS = (
    "id, title, description, creator, created_at, "
    "start_date, end_date, votes_for, votes_against"
)

_RETRYABLE = (pg_errors.DeadlockDetected, pg_errors.SerializationFailure)


class PostgresBackend:
    """
    psycopg2-backed ledger tables.

    One connection per call, closed in ``finally``. A commit that loses
    a deadlock or serialization race is retried with a short linear
    backoff; any other failure rolls the transaction back and propagates.
    """

    def __init__(self, db_config: dict, max_retries: int = 3):
        self._db_config = db_config
        self._max_retries = max_retries

    def _connect(self):
        return psycopg2.connect(**self._db_config)

    def ensure_schema(self) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(SCHEMA_SQL)
            conn.commit()
            cur.close()
        finally:
            conn.close()

    def load(self) -> LedgerSnapshot:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT {_PROPOSAL_COLUMNS} FROM proposals ORDER BY id")
            proposals = {row[0]: Proposal(*row) for row in cur.fetchall()}

            cur.execute(
                "SELECT voter, proposal_id, vote_power, is_for FROM votes "
                "ORDER BY voter, proposal_id"
            )
            votes = {}
            for row in cur.fetchall():
                vote = Vote(*row)
                votes[vote.key] = vote

            cur.execute("SELECT owner, balance FROM token_balances ORDER BY owner")
            balances = {owner: balance for owner, balance in cur.fetchall()}

            cur.execute("SELECT value FROM id_counter WHERE singleton")
            row = cur.fetchone()
            cur.close()
        finally:
            conn.close()

        snapshot = LedgerSnapshot(
            proposals=proposals,
            votes=votes,
            balances=balances,
            id_counter=row[0] if row else 0,
        )
        logger.info(
            "Loaded ledger: %d proposals, %d votes, %d balances, id_counter=%d",
            len(proposals), len(votes), len(balances), snapshot.id_counter,
        )
        return snapshot

    def commit(self, batch: WriteBatch) -> None:
        for attempt in range(self._max_retries):
            conn = self._connect()
            try:
                cur = conn.cursor()
                self._write(cur, batch)
                conn.commit()
                cur.close()
                return
            except _RETRYABLE:
                conn.rollback()
                if attempt < self._max_retries - 1:
                    logger.warning("Commit conflict, retrying (attempt %d)", attempt + 1)
                    time.sleep(0.05 * (attempt + 1))
                    continue
                raise
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()
        raise RuntimeError("commit: exhausted retries")

    def _write(self, cur, batch: WriteBatch) -> None:
        for proposal_id in batch.deleted_proposals:
            cur.execute("DELETE FROM proposals WHERE id = %s", (proposal_id,))

        for proposal in batch.proposals.values():
            cur.execute(
                f"INSERT INTO proposals ({_PROPOSAL_COLUMNS}) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) "
                "ON CONFLICT (id) DO UPDATE SET "
                "title = EXCLUDED.title, "
                "description = EXCLUDED.description, "
                "votes_for = EXCLUDED.votes_for, "
                "votes_against = EXCLUDED.votes_against",
                (
                    proposal.id,
                    proposal.title,
                    proposal.description,
                    proposal.creator,
                    proposal.created_at,
                    proposal.start_date,
                    proposal.end_date,
                    proposal.votes_for,
                    proposal.votes_against,
                ),
            )

        for vote in batch.votes:
            cur.execute(
                "INSERT INTO votes (voter, proposal_id, vote_power, is_for) "
                "VALUES (%s, %s, %s, %s) "
                "ON CONFLICT (voter, proposal_id) DO NOTHING",
                (vote.voter, vote.proposal_id, vote.vote_power, vote.is_for),
            )
            if cur.rowcount == 0:
                raise AlreadyExists("User has already voted on this proposal")

        for owner, balance in batch.balances.items():
            cur.execute(
                "INSERT INTO token_balances (owner, balance) VALUES (%s, %s) "
                "ON CONFLICT (owner) DO UPDATE SET balance = EXCLUDED.balance",
                (owner, balance),
            )

        if batch.id_counter is not None:
            cur.execute(
                "INSERT INTO id_counter (singleton, value) VALUES (TRUE, %s) "
                "ON CONFLICT (singleton) DO UPDATE SET "
                "value = GREATEST(id_counter.value, EXCLUDED.value)",
                (batch.id_counter,),
            )
