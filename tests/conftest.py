"""
conftest.py - Shared pytest fixtures for staking tests

Provides:
- A manual clock starting at t=0
- A funded custody book (participants + reward reserve in the pool)
- A quiet StakingLedger with one administrator and three participants
- A ledger wired to the scriptable FakeCustody
"""

import pytest

from staking import ManualClock

from tests.builders import build_custody, build_ledger
from tests.fake_custody import FakeCustody


@pytest.fixture
def clock():
    return ManualClock(start=0)


@pytest.fixture
def custody():
    return build_custody()


@pytest.fixture
def ledger(custody, clock):
    """Ledger over a funded AssetLedger."""
    return build_ledger(custody=custody, clock=clock)


@pytest.fixture
def fake_custody():
    return FakeCustody()


@pytest.fixture
def fake_ledger(fake_custody, clock):
    """Ledger over FakeCustody, for failure injection."""
    return build_ledger(custody=fake_custody, clock=clock)
