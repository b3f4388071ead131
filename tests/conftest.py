from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ballot.backends import MemoryBackend
from ballot.config import LedgerConfig
from ballot.dates import SECONDS_PER_DAY, DateCodec
from ballot.service import GovernanceService

CODEC = DateCodec()

ALICE = "alice-principal"
BOB = "bob-principal"

# 01-01-2030 and 02-01-2030 at midnight
JAN_1_2030 = CODEC.to_epoch(2030, 1, 1)
JAN_2_2030 = CODEC.to_epoch(2030, 1, 2)


class FakeClock:
    """Host clock the tests can move by hand."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds

    def set_date(self, year: int, month: int, day: int, seconds: int = 0) -> None:
        self.now = CODEC.to_epoch(year, month, day) + seconds


@pytest.fixture
def clock() -> FakeClock:
    # 31-12-2029, 01:00
    return FakeClock(JAN_1_2030 - SECONDS_PER_DAY + 3600)


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def service(backend, clock) -> GovernanceService:
    return GovernanceService.open(backend=backend, clock=clock, config=LedgerConfig())


@pytest.fixture
def proposal(service):
    """A proposal open for voting on 01-01-2030 through 02-01-2030."""
    return service.create_proposal(
        ALICE, "Fund the bridge", "Allocate treasury to the bridge", "01-01-2030", "02-01-2030"
    ).proposal
