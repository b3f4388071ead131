"""
Ledger Configuration

All tunables are read from environment variables with defaults, so the
gateway can be reconfigured without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ballot.dates import DEFAULT_MIN_YEAR


def _db_config_from_env() -> dict:
    return {
        "host": os.environ.get("BALLOT_DB_HOST", "localhost"),
        "port": int(os.environ.get("BALLOT_DB_PORT", "5433")),
        "dbname": os.environ.get("BALLOT_DB_NAME", "ballot_ledger"),
        "user": os.environ.get("BALLOT_DB_USER", "admin"),
        "password": os.environ.get("BALLOT_DB_PASSWORD", "password123"),
    }


@dataclass
class LedgerConfig:
    """Tunables for one ledger instance."""
    min_year: int = DEFAULT_MIN_YEAR
    default_tokens: int = 3
    max_proposal_bytes: int = 1024
    backend: str = "memory"  # "memory" | "postgres"
    db_config: dict = field(default_factory=_db_config_from_env)

    @classmethod
    def from_env(cls) -> LedgerConfig:
        backend = os.environ.get("BALLOT_BACKEND", "memory").lower()
        if backend not in ("memory", "postgres"):
            raise ValueError(f"Unknown BALLOT_BACKEND: {backend}")
        return cls(
            min_year=int(os.environ.get("BALLOT_MIN_YEAR", str(DEFAULT_MIN_YEAR))),
            default_tokens=int(os.environ.get("BALLOT_DEFAULT_TOKENS", "3")),
            max_proposal_bytes=int(os.environ.get("BALLOT_MAX_PROPOSAL_BYTES", "1024")),
            backend=backend,
        )
