"""
fakes.py - Collaborator doubles and builders for pool tests

Provides minimal stand-ins for the pool's external collaborators:
- FailingFeeSink: rejects every fee
- ReentrantFeeSink: calls back into the pool from receive()
- ReentrantToken: calls back into the pool whenever value leaves it
- AllowAll / DenyAll: fixed authorizers

and builders shared by fixtures and property-based tests.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Callable, List, Optional

from microcredit import (
    AccessControl, Capability, Clock, CreditScoreRegistry, LendingError,
    PoolParameters, ShareVault, TokenLedger, TransferFailed, Treasury,
)


class FailingFeeSink:
    """Fee sink whose receive() always fails."""

    def __init__(self, account: str = "treasury"):
        self._account = account
        self.calls = 0

    @property
    def account(self) -> str:
        return self._account

    def receive(self, amount: int) -> None:
        self.calls += 1
        raise TransferFailed(f"fee sink rejected {amount}")


class ReentrantFeeSink:
    """
    Fee sink that tries to re-enter the pool before accepting the fee.

    The callback's error is captured so tests can inspect it; the fee
    is then accepted normally.
    """

    def __init__(self, callback: Optional[Callable[[], None]] = None, account: str = "treasury"):
        self._account = account
        self.callback = callback
        self.errors: List[Exception] = []
        self.received: List[int] = []

    @property
    def account(self) -> str:
        return self._account

    def receive(self, amount: int) -> None:
        if self.callback is not None:
            try:
                self.callback()
            except LendingError as exc:
                self.errors.append(exc)
        self.received.append(amount)


class ReentrantToken(TokenLedger):
    """
    Token that invokes a hook every time value leaves `watched` wallet.

    If the hook raises, the transfer raises too (like a reverting
    receiver), unless `swallow` is set.
    """

    def __init__(self, *args, watched: str = "pool-1", swallow: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.watched = watched
        self.swallow = swallow
        self.hook: Optional[Callable[[], None]] = None
        self.errors: List[Exception] = []

    def transfer(self, source: str, dest: str, amount: int, memo: str = "") -> None:
        super().transfer(source, dest, amount, memo)
        if source == self.watched and self.hook is not None:
            try:
                self.hook()
            except LendingError as exc:
                self.errors.append(exc)
                if not self.swallow:
                    raise


class AllowAll:
    def has_capability(self, caller: str, action: str) -> bool:
        return True


class DenyAll:
    def has_capability(self, caller: str, action: str) -> bool:
        return False


# =============================================================================
# HELPERS
# =============================================================================

START = datetime(2025, 1, 1)

# Lenient parameters: no score gate, 50% max loan, 20% reserve factor
DEFAULT_PARAMS = PoolParameters(
    interest_rate_bps=500,
    tenor_days=90,
    max_loan_to_pool_bps=5000,
    reserve_factor_bps=2000,
    min_credit_score=0,
)

WALLET_FUNDING = 1_000_000
WALLETS = ("alice", "bob", "carol", "dave")


def days_later(clock: Clock, days: int, seconds: int = 0) -> datetime:
    """Advance clock by days (plus seconds) and return the new time."""
    new_time = clock.current_time + timedelta(days=days, seconds=seconds)
    clock.advance_time(new_time)
    return new_time


def make_access() -> AccessControl:
    """Admin plus a manager, a keeper that may only default, and a pauser."""
    control = AccessControl("admin")
    control.grant_role("admin", "manager", "manager")
    control.grant("admin", "keeper", Capability.MARK_DEFAULT)
    control.grant_role("admin", "guardian", "pauser")
    return control


def make_token(clock: Clock, token_class=TokenLedger, **kwargs) -> TokenLedger:
    token = token_class("mUSDC", "Mock USDC", decimals=6, clock=clock, **kwargs)
    for wallet in WALLETS:
        token.mint(wallet, WALLET_FUNDING)
    return token


def make_pool(clock, usdc, registry, fee_sink, access, params=DEFAULT_PARAMS, pool_id="pool-1"):
    return ShareVault(
        params,
        asset=usdc,
        reputation=registry,
        fee_sink=fee_sink,
        authorizer=access,
        clock=clock,
        name="Test Pool",
        symbol="TP",
        pool_id=pool_id,
    )


def build_system(params=DEFAULT_PARAMS, fee_sink=None, token_class=TokenLedger) -> SimpleNamespace:
    """
    Fresh clock, token, access control, registry, treasury and pool.

    For hypothesis tests, which cannot use function-scoped fixtures.
    """
    clock = Clock(START)
    usdc = make_token(clock, token_class)
    access = make_access()
    registry = CreditScoreRegistry(access, clock=clock)
    treasury = Treasury(usdc, access)
    pool = make_pool(clock, usdc, registry, fee_sink or treasury, access, params)
    return SimpleNamespace(
        clock=clock, usdc=usdc, access=access, registry=registry,
        treasury=treasury, pool=pool,
    )


def open_loan(pool, borrower: str, amount: int, manager: str = "manager") -> int:
    """Request, approve and draw a loan; return its id."""
    loan_id = pool.request_loan(borrower, amount)
    pool.approve_loan(manager, loan_id)
    pool.drawdown(borrower, loan_id)
    return loan_id
