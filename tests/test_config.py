"""
Configuration Test Suite
Tests environment-driven settings and backend selection.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ballot.backends import MemoryBackend
from ballot.config import LedgerConfig
from ballot.errors import InvalidInput
from ballot.service import GovernanceService


def test_defaults(monkeypatch):
    for name in ("BALLOT_MIN_YEAR", "BALLOT_DEFAULT_TOKENS", "BALLOT_BACKEND", "BALLOT_DB_PORT"):
        monkeypatch.delenv(name, raising=False)
    config = LedgerConfig.from_env()
    assert config.min_year == 2023
    assert config.default_tokens == 3
    assert config.max_proposal_bytes == 1024
    assert config.backend == "memory"
    assert config.db_config["port"] == 5433


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BALLOT_MIN_YEAR", "2030")
    monkeypatch.setenv("BALLOT_DEFAULT_TOKENS", "10")
    monkeypatch.setenv("BALLOT_BACKEND", "Postgres")
    monkeypatch.setenv("BALLOT_DB_HOST", "db.internal")
    config = LedgerConfig.from_env()
    assert config.min_year == 2030
    assert config.default_tokens == 10
    assert config.backend == "postgres"
    assert config.db_config["host"] == "db.internal"


def test_unknown_backend(monkeypatch):
    monkeypatch.setenv("BALLOT_BACKEND", "redis")
    with pytest.raises(ValueError):
        LedgerConfig.from_env()


def test_min_year_reaches_the_date_codec(clock):
    service = GovernanceService.from_config(LedgerConfig(min_year=2031), clock=clock)
    assert isinstance(service._backend, MemoryBackend)
    with pytest.raises(InvalidInput):
        service.create_proposal("alice", "t", "d", "01-01-2030", "02-01-2030")


def test_postgres_backend_selected(clock):
    with patch("ballot.service.PostgresBackend") as backend_cls:
        backend = backend_cls.return_value
        backend.load.return_value = MemoryBackend().load()
        GovernanceService.from_config(LedgerConfig(backend="postgres"), clock=clock)
    backend.ensure_schema.assert_called_once()
    backend.load.assert_called_once()
