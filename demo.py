#!/usr/bin/env python3
"""
demo.py - Walkthrough: Deploy and Operate a Micro-Lending Pool

Deploys the complete system in order and then runs one pool through a
full lending cycle. verbose=True on every stateful object, so each applied
or rejected operation prints one line.

WHAT YOU'LL SEE:
  1-3: Deployment    - Stablecoin, access control, registry, treasury, factory
  4-5: Pools         - Example and real pools from parameter presets
  6-8: Lending       - Deposits, a loan drawn and repaid, a rejected request
  9:   Defaults      - The lifecycle engine sweeps an overdue loan
  10:  Verification  - Conservation and solvency checks

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from microcredit import (
    AccessControl, Capability, Clock, CreditScoreRegistry, EXAMPLE_POOL_PARAMS,
    LendingError, LifecycleEngine, PoolFactory, REAL_POOL_PARAMS, TokenLedger,
    Treasury, to_base_units, to_display_units,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    deployer: str = "deployer"
    decimals: int = 6
    lender_funding: str = "50000"
    borrower_funding: str = "5000"
    loan_amount: str = "10000"
    repay_after_days: int = 60


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}\n")


def usd(amount: int) -> str:
    return f"{to_display_units(amount, CONFIG.decimals)} mUSDC"


def units(value: str) -> int:
    return to_base_units(value, CONFIG.decimals)


# ============================================================================
# DEPLOYMENT
# ============================================================================

def deploy_system():
    step_header(1, "Stablecoin and Clock")
    clock = Clock(CONFIG.start_time)
    usdc = TokenLedger("mUSDC", "Mock USDC", decimals=CONFIG.decimals, clock=clock, verbose=True)
    print(f"💵 {usdc!r} at {clock.current_time}")
    wait_for_enter()

    step_header(2, "Access Control, Registry and Treasury")
    access = AccessControl(CONFIG.deployer)
    access.grant_role(CONFIG.deployer, "ops", "manager")
    access.grant_role(CONFIG.deployer, "cfo", "treasury_admin")
    access.grant(CONFIG.deployer, "keeper", Capability.MARK_DEFAULT)
    registry = CreditScoreRegistry(access, clock=clock)
    treasury = Treasury(usdc, access)
    for principal in (CONFIG.deployer, "ops", "cfo", "keeper"):
        print(f"🔑 {principal:<9} {sorted(access.capabilities_of(principal))}")
    wait_for_enter()

    step_header(3, "Pool Factory")
    factory = PoolFactory(usdc, registry, treasury, access, clock, verbose=True)
    print("🏭 Factory ready, 0 pools")
    return clock, usdc, access, registry, treasury, factory


def create_pools(factory):
    step_header(4, "Example Pool")
    test_pool = factory.create_pool(CONFIG.deployer, EXAMPLE_POOL_PARAMS, "MicroCredit Test Pool", "MCTP")
    wait_for_enter()

    step_header(5, "Real Pool")
    real_pool = factory.create_pool(CONFIG.deployer, REAL_POOL_PARAMS, "MicroCredit Real Pool", "MCRP")
    print(f"\nTotal pools created: {factory.get_pool_count()}")
    return test_pool, real_pool


# ============================================================================
# LENDING
# ============================================================================

def fund_and_deposit(usdc, registry, pool):
    step_header(6, "Deposits")
    for lender in ("lender1", "lender2"):
        usdc.mint(lender, units(CONFIG.lender_funding))
    usdc.mint("borrower", units(CONFIG.borrower_funding))
    registry.set_score(CONFIG.deployer, "borrower", 65)

    pool.deposit("lender1", units("30000"))
    pool.deposit("lender2", units("20000"))
    print(f"\nPool assets: {usd(pool.total_assets)}, shares: {pool.total_shares}")
    print(f"Max single loan: {usd(pool.max_loan_amount())}")


def borrow_and_repay(clock, pool, treasury):
    step_header(7, "Loan Cycle")
    loan_id = pool.request_loan("borrower", units(CONFIG.loan_amount))
    pool.approve_loan("ops", loan_id)
    pool.drawdown("borrower", loan_id)

    clock.advance_time(clock.current_time + timedelta(days=CONFIG.repay_after_days))
    debt = pool.current_debt(loan_id)
    print(f"\nAfter {CONFIG.repay_after_days} days: principal {usd(debt.principal)}, "
          f"interest {usd(debt.interest)}")

    receipt = pool.repay("borrower", loan_id, debt.total)
    print(f"Repaid: principal {usd(receipt.principal_paid)}, interest {usd(receipt.interest_paid)}, "
          f"fee {usd(receipt.fee)}")
    print(f"Treasury balance: {usd(treasury.balance)}")
    print(f"Share value now: {usd(pool.convert_to_assets(units('1')))} per {units('1')} shares")


def rejected_request(pool):
    step_header(8, "Rejected Request")
    try:
        pool.request_loan("stranger", units("100"))
    except LendingError as exc:
        print(f"\nRequest refused: {type(exc).__name__}")


def sweep_defaults(pool, registry, engine_pools):
    step_header(9, "Lifecycle Engine")
    loan_id = pool.request_loan("borrower", units("2000"))
    pool.approve_loan("ops", loan_id)
    pool.drawdown("borrower", loan_id)

    engine = LifecycleEngine(engine_pools, keeper="keeper")
    due = pool.get_loan(loan_id).due_at
    swept = engine.run([due, due + timedelta(days=1)])
    print(f"\nDefaulted: {swept}")
    print(f"Borrower score: {registry.score('borrower')}")
    print(f"Pool assets: {usd(pool.total_assets)} for {pool.total_shares} shares")


def verify(usdc, pools):
    step_header(10, "Verification")
    print(f"Stablecoin conservation: {usdc.verify_conservation()}")
    for pool in pools:
        print(f"{pool.pool_id} solvency:  {pool.check_solvency()}")
        print(f"{pool.pool_id} events:    {len(pool.events)}")


def main():
    print("=" * 70)
    print("       MICROCREDIT - DEPLOYMENT WALKTHROUGH")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")

    clock, usdc, access, registry, treasury, factory = deploy_system()
    wait_for_enter()
    test_pool, real_pool = create_pools(factory)
    wait_for_enter()
    fund_and_deposit(usdc, registry, test_pool)
    wait_for_enter()
    borrow_and_repay(clock, test_pool, treasury)
    wait_for_enter()
    rejected_request(test_pool)
    wait_for_enter()
    sweep_defaults(test_pool, registry, factory.get_pools())
    wait_for_enter()
    verify(usdc, factory.get_pools())

    print("\n" + "=" * 70)
    print("       WALKTHROUGH COMPLETE")
    print("=" * 70)
    print("""
    Next steps:
      - See microcredit/vault.py for the pool operations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
