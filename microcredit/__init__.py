"""
microcredit - Community Micro-Lending Ledger

Pooled depositors fund a shared reserve; borrowers draw simple-interest
loans against it; repayments are split between principal, interest and a
protocol fee; borrower behavior feeds a bounded reputation score.

Usage:
    from microcredit import (
        AccessControl, Clock, CreditScoreRegistry, PoolFactory, TokenLedger,
        Treasury, EXAMPLE_POOL_PARAMS,
    )

    clock = Clock(datetime(2025, 1, 1))
    usdc = TokenLedger("mUSDC", "Mock USDC", decimals=6, clock=clock)
    access = AccessControl("deployer")
    registry = CreditScoreRegistry(access, clock=clock)
    treasury = Treasury(usdc, access)
    factory = PoolFactory(usdc, registry, treasury, access, clock)

    pool = factory.create_pool("deployer", EXAMPLE_POOL_PARAMS, "Test Pool", "MCTP")
    usdc.mint("alice", 1_000_000)
    pool.deposit("alice", 1_000_000)
"""

# Core types
from .core import (
    Clock,
    PoolParameters,
    LoanStatus,
    LoanRecord,
    DebtBreakdown,
    RepaymentResult,
    RepaymentReceipt,
    PoolEvent,
    FundingAsset,
    ReputationStore,
    FeeSink,
    Authorizer,
    coerce_params,
    EXAMPLE_POOL_PARAMS,
    REAL_POOL_PARAMS,
    MAX_BPS,
    MIN_TENOR_DAYS,
    MAX_TENOR_DAYS,
    MIN_SCORE,
    MAX_SCORE,
    REPAY_SCORE_BONUS,
    DEFAULT_SCORE_PENALTY,
    # Exceptions
    LendingError,
    InvalidAmount,
    LoanNotFound,
    InvalidTransition,
    Unauthorized,
    ExceedsPoolRatio,
    LowScore,
    InsufficientBalance,
    NothingToWithdraw,
    ZeroAmount,
    InvalidParameters,
    ArithmeticOverflow,
    PoolPaused,
    ReentrantCall,
    TransferFailed,
    InsolventPool,
)

# Numeric helpers
from .numeric import (
    BPS_DENOMINATOR,
    DAYS_PER_YEAR,
    SECONDS_PER_DAY,
    U8_MAX,
    U16_MAX,
    U256_MAX,
    bps_of,
    mul_div,
    checked_add,
    checked_sub,
    checked_mul,
    elapsed_days,
    simple_interest,
)

# Collaborators
from .tokens import TokenLedger, TransferRecord, SYSTEM_WALLET, to_display_units, to_base_units
from .access import AccessControl, Capability, ROLE_CAPABILITIES
from .reputation import CreditScoreRegistry
from .treasury import Treasury

# Loan ledger and pool
from .loan_ledger import LoanLedger, calculate_interest, calculate_repayment_split
from .vault import ShareVault
from .factory import PoolFactory
from .lifecycle_engine import LifecycleEngine

__all__ = [
    # Core
    'Clock', 'PoolParameters', 'LoanStatus', 'LoanRecord', 'DebtBreakdown',
    'RepaymentResult', 'RepaymentReceipt', 'PoolEvent',
    'FundingAsset', 'ReputationStore', 'FeeSink', 'Authorizer',
    'coerce_params', 'EXAMPLE_POOL_PARAMS', 'REAL_POOL_PARAMS',
    'MAX_BPS', 'MIN_TENOR_DAYS', 'MAX_TENOR_DAYS', 'MIN_SCORE', 'MAX_SCORE',
    'REPAY_SCORE_BONUS', 'DEFAULT_SCORE_PENALTY',
    # Exceptions
    'LendingError', 'InvalidAmount', 'LoanNotFound', 'InvalidTransition',
    'Unauthorized', 'ExceedsPoolRatio', 'LowScore', 'InsufficientBalance',
    'NothingToWithdraw', 'ZeroAmount', 'InvalidParameters', 'ArithmeticOverflow',
    'PoolPaused', 'ReentrantCall', 'TransferFailed', 'InsolventPool',
    # Numeric
    'BPS_DENOMINATOR', 'DAYS_PER_YEAR', 'SECONDS_PER_DAY',
    'U8_MAX', 'U16_MAX', 'U256_MAX',
    'bps_of', 'mul_div', 'checked_add', 'checked_sub', 'checked_mul',
    'elapsed_days', 'simple_interest',
    # Collaborators
    'TokenLedger', 'TransferRecord', 'SYSTEM_WALLET', 'to_display_units', 'to_base_units',
    'AccessControl', 'Capability', 'ROLE_CAPABILITIES',
    'CreditScoreRegistry', 'Treasury',
    # Loans and pools
    'LoanLedger', 'calculate_interest', 'calculate_repayment_split',
    'ShareVault', 'PoolFactory', 'LifecycleEngine',
]

__version__ = '1.0.0'
