"""
Core types for the community micro-lending ledger.

This module provides the foundational data structures and protocols:
1. Protocols: narrow interfaces to the external collaborators
   (FundingAsset, ReputationStore, FeeSink, Authorizer)
2. Data structures: PoolParameters, LoanRecord, DebtBreakdown,
   RepaymentResult, RepaymentReceipt, PoolEvent
3. Exceptions: LendingError and the domain-specific error taxonomy
4. Clock: the shared logical clock that every pool component reads

Amounts are ints in the base unit of the funding asset. Timestamps are
datetimes read from a Clock, never from the wall clock.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import (
    Any, Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

MAX_BPS = 10_000
MIN_TENOR_DAYS = 1
MAX_TENOR_DAYS = 3650
MIN_SCORE = 0
MAX_SCORE = 100

# Reputation feedback applied by the pool.
REPAY_SCORE_BONUS = 15
DEFAULT_SCORE_PENALTY = 30

# Event kinds recorded in the pool audit trail.
EVENT_DEPOSIT = "Deposit"
EVENT_WITHDRAW = "Withdraw"
EVENT_LOAN_REQUESTED = "LoanRequested"
EVENT_LOAN_APPROVED = "LoanApproved"
EVENT_LOAN_DRAWN = "LoanDrawn"
EVENT_LOAN_REPAID = "LoanRepaid"
EVENT_LOAN_DEFAULTED = "LoanDefaulted"
EVENT_PARAMS_UPDATED = "ParamsUpdated"
EVENT_PAUSED = "Paused"
EVENT_UNPAUSED = "Unpaused"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending-related errors."""
    pass


class InvalidAmount(LendingError):
    """Raised when a value argument is zero or otherwise out of range."""
    pass


class LoanNotFound(LendingError):
    """Raised when a loan id is unknown to the ledger."""
    pass


class InvalidTransition(LendingError):
    """Raised when an operation violates the loan or pool state machine."""
    pass


class Unauthorized(LendingError):
    """Raised when a capability or ownership check fails."""
    pass


class ExceedsPoolRatio(LendingError):
    """Raised when a loan request exceeds the pool's max loan-to-pool ratio."""
    pass


class LowScore(LendingError):
    """Raised when a borrower's reputation score is below the pool minimum."""
    pass


class InsufficientBalance(LendingError):
    """Raised when an account or the pool cannot cover the requested amount."""
    pass


class NothingToWithdraw(LendingError):
    """Raised when a share redemption rounds down to zero value."""
    pass


class ZeroAmount(LendingError):
    """Raised when a deposit would mint zero shares after rounding."""
    pass


class InvalidParameters(LendingError, ValueError):
    """Raised when pool parameters violate their bounds."""
    pass


class ArithmeticOverflow(LendingError):
    """Raised when an intermediate value leaves the u256 range."""
    pass


class PoolPaused(LendingError):
    """Raised when a mutating operation is attempted on a paused pool."""
    pass


class ReentrantCall(LendingError):
    """Raised when a pool operation is entered while another is in flight."""
    pass


class TransferFailed(LendingError):
    """Raised when a collaborator fails to accept or account for a transfer."""
    pass


class InsolventPool(LendingError):
    """Raised when shares are outstanding but the pool holds no assets."""
    pass


# ============================================================================
# POOL PARAMETERS
# ============================================================================

# field name -> (min, max)
_PARAM_BOUNDS: Dict[str, Tuple[int, int]] = {
    'interest_rate_bps': (0, MAX_BPS),
    'tenor_days': (MIN_TENOR_DAYS, MAX_TENOR_DAYS),
    'max_loan_to_pool_bps': (0, MAX_BPS),
    'reserve_factor_bps': (0, MAX_BPS),
    'min_credit_score': (MIN_SCORE, MAX_SCORE),
}

# camelCase aliases accepted by PoolParameters.from_mapping
_PARAM_ALIASES = {
    'interestRateBps': 'interest_rate_bps',
    'tenorDays': 'tenor_days',
    'maxLoanToPoolBps': 'max_loan_to_pool_bps',
    'reserveFactorBps': 'reserve_factor_bps',
    'minCreditScore': 'min_credit_score',
}


@dataclass(frozen=True, slots=True)
class PoolParameters:
    """
    Immutable parameter set of a pool.

    Attributes:
        interest_rate_bps: Annual simple interest rate (0..=10000).
        tenor_days: Loan duration from drawdown to due date (1..=3650).
        max_loan_to_pool_bps: Largest single loan as a share of pool assets (0..=10000).
        reserve_factor_bps: Share of collected interest sent to the fee sink (0..=10000).
        min_credit_score: Minimum reputation score to borrow, 0 disables the check (0..=100).

    Every field is validated in __post_init__, so an out-of-range
    PoolParameters instance can never exist.
    """
    interest_rate_bps: int
    tenor_days: int
    max_loan_to_pool_bps: int
    reserve_factor_bps: int
    min_credit_score: int

    def __post_init__(self):
        for name, (low, high) in _PARAM_BOUNDS.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidParameters(f"{name} must be an int, got {type(value).__name__}")
            if value < low or value > high:
                raise InvalidParameters(f"{name} must be in [{low}, {high}], got {value}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> 'PoolParameters':
        """
        Build parameters from a dict with snake_case or camelCase keys.

        Raises:
            InvalidParameters: On unknown or missing keys, or out-of-range values.
        """
        normalized: Dict[str, Any] = {}
        for key, value in raw.items():
            name = _PARAM_ALIASES.get(key, key)
            if name not in _PARAM_BOUNDS:
                raise InvalidParameters(f"Unknown pool parameter: {key}")
            normalized[name] = value
        missing = set(_PARAM_BOUNDS) - set(normalized)
        if missing:
            raise InvalidParameters(f"Missing pool parameters: {sorted(missing)}")
        return cls(**normalized)

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def coerce_params(params: Any) -> PoolParameters:
    """Accept a PoolParameters or a mapping and return validated PoolParameters."""
    if isinstance(params, PoolParameters):
        return params
    if isinstance(params, Mapping):
        return PoolParameters.from_mapping(params)
    raise InvalidParameters(f"Expected PoolParameters or mapping, got {type(params).__name__}")


# Presets used by the deployment walkthrough.
EXAMPLE_POOL_PARAMS = PoolParameters(
    interest_rate_bps=500,       # 5% annual simple interest
    tenor_days=90,
    max_loan_to_pool_bps=5000,   # 50% of pool assets per loan
    reserve_factor_bps=2000,     # 20% of interest to the treasury
    min_credit_score=50,
)

REAL_POOL_PARAMS = PoolParameters(
    interest_rate_bps=800,
    tenor_days=180,
    max_loan_to_pool_bps=3000,
    reserve_factor_bps=1500,
    min_credit_score=70,
)


# ============================================================================
# LOANS
# ============================================================================

class LoanStatus(str, Enum):
    """Status of a loan. REPAID and DEFAULTED are terminal."""
    REQUESTED = "requested"
    APPROVED = "approved"
    DRAWN = "drawn"
    REPAID = "repaid"
    DEFAULTED = "defaulted"

    @property
    def is_terminal(self) -> bool:
        return self in (LoanStatus.REPAID, LoanStatus.DEFAULTED)


@dataclass(slots=True)
class LoanRecord:
    """
    A single loan as owned by the LoanLedger.

    Only the LoanLedger mutates these. Everything handed out by the ledger
    is a copy.
    """
    loan_id: int
    borrower: str
    principal: int
    rate_bps: int
    tenor_days: int
    created_at: datetime
    status: LoanStatus = LoanStatus.REQUESTED
    drawn_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    original_principal: int = 0
    total_interest_paid: int = 0
    total_principal_paid: int = 0
    history: Tuple[Tuple[LoanStatus, datetime], ...] = ()

    def __repr__(self) -> str:
        return f"Loan(#{self.loan_id} {self.borrower} {self.principal} {self.status.value})"


@dataclass(frozen=True, slots=True)
class DebtBreakdown:
    """Outstanding debt of a drawn loan at a point in time."""
    principal: int
    interest: int
    late_fees: int
    total: int


@dataclass(frozen=True, slots=True)
class RepaymentResult:
    """
    The loan ledger's own account of a repayment.

    Informational: the pool derives its authoritative split from
    before/after snapshots (see RepaymentReceipt).
    """
    loan_id: int
    amount: int
    interest_paid: int
    principal_paid: int
    remaining: int
    fully_repaid: bool


@dataclass(frozen=True, slots=True)
class RepaymentReceipt:
    """Repayment figures as booked by the pool."""
    loan_id: int
    amount: int
    principal_paid: int
    interest_paid: int
    fee: int
    remaining: int
    fully_repaid: bool


# ============================================================================
# AUDIT TRAIL
# ============================================================================

@dataclass(frozen=True, slots=True)
class PoolEvent:
    """
    Immutable record of a successful pool operation.

    Attributes:
        sequence_number: Monotonic within the pool
        timestamp: Logical time of the operation
        kind: One of the EVENT_* constants
        actor: Principal that performed the operation
        data: Operation-specific figures
    """
    sequence_number: int
    timestamp: datetime
    kind: str
    actor: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        details = ", ".join(f"{k}={v}" for k, v in self.data.items())
        return f"PoolEvent(#{self.sequence_number} {self.kind} by {self.actor}: {details})"


# ============================================================================
# CLOCK
# ============================================================================

class Clock:
    """
    Logical clock shared by a pool, its loan ledger and its keepers.

    Time can only move forward.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class FundingAsset(Protocol):
    """
    Fungible value the pool is denominated in.

    transfer() is all-or-nothing: it either moves the full amount or raises
    without changing any balance.
    """

    def balance_of(self, wallet: str) -> int:
        ...

    def transfer(self, source: str, dest: str, amount: int) -> None:
        ...

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


@runtime_checkable
class ReputationStore(Protocol):
    """Clamped 0-100 score per borrower. Mutators never fail for valid deltas."""

    def score(self, user: str) -> int:
        ...

    def increase(self, user: str, delta: int) -> None:
        ...

    def decrease(self, user: str, delta: int) -> None:
        ...


@runtime_checkable
class FeeSink(Protocol):
    """
    Account receiving the protocol's share of interest.

    The pool moves fee value to `account` and then calls receive(); if
    receive() raises, the whole repayment is rolled back.
    """

    @property
    def account(self) -> str:
        ...

    def receive(self, amount: int) -> None:
        ...


@runtime_checkable
class Authorizer(Protocol):
    """Capability check queried before every privileged operation."""

    def has_capability(self, caller: str, action: str) -> bool:
        ...
