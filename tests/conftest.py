"""
conftest.py - Shared pytest fixtures for microcredit tests

Provides common fixtures used across unit, conformance and functional tests:
- A shared logical clock starting 2025-01-01
- A 6-decimal mock stablecoin with funded wallets
- Access control with admin, manager, keeper and pauser principals
- Reputation registry, treasury and a ready-to-use pool
"""

import pytest

from microcredit import Clock, CreditScoreRegistry, Treasury
from tests.fakes import START, make_access, make_pool, make_token


@pytest.fixture
def clock():
    return Clock(START)


@pytest.fixture
def usdc(clock):
    """Mock stablecoin with alice, bob, carol and dave funded."""
    return make_token(clock)


@pytest.fixture
def access():
    return make_access()


@pytest.fixture
def registry(access, clock):
    return CreditScoreRegistry(access, clock=clock)


@pytest.fixture
def treasury(usdc, access):
    return Treasury(usdc, access)


@pytest.fixture
def pool(clock, usdc, registry, treasury, access):
    """Empty pool with DEFAULT_PARAMS."""
    return make_pool(clock, usdc, registry, treasury, access)


@pytest.fixture
def funded_pool(pool):
    """Pool with alice's 10,000 deposit."""
    pool.deposit("alice", 10_000)
    return pool
