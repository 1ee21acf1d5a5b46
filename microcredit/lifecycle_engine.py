"""
lifecycle_engine.py - Default Sweeper

Drives pools through time. Each step():
1. Advance the shared clock
2. Poll every pool for DRAWN loans past their due date
3. Mark each one defaulted through the pool, as the keeper

Loans are visited in id order so runs are reproducible. The pools' event
logs are the audit trail; the engine keeps no state of its own beyond the
list of loans it has defaulted.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, List, Sequence, Tuple, Union

from .access import Capability
from .core import Clock, Unauthorized
from .vault import ShareVault


class LifecycleEngine:
    """
    Advance time and default overdue loans.

    All pools must share the engine's clock.

    Example:
        engine = LifecycleEngine(pool, keeper="keeper")
        defaulted = engine.step(datetime(2025, 6, 1))
    """

    def __init__(self, pools: Union[ShareVault, Sequence[ShareVault]], keeper: str):
        self.pools: List[ShareVault] = [pools] if isinstance(pools, ShareVault) else list(pools)
        if not self.pools:
            raise ValueError("LifecycleEngine needs at least one pool")
        self.clock: Clock = self.pools[0].clock
        for pool in self.pools:
            if pool.clock is not self.clock:
                raise ValueError(f"Pool {pool.pool_id} does not share the engine clock")
            if not pool.authorizer.has_capability(keeper, Capability.MARK_DEFAULT):
                raise Unauthorized(f"Keeper {keeper} cannot mark defaults on {pool.pool_id}")
        self.keeper = keeper
        self.verbose = any(pool.verbose for pool in self.pools)
        self.defaulted: List[Tuple[str, int]] = []

    def step(self, timestamp: datetime) -> List[Tuple[str, int]]:
        """
        Advance time and mark every overdue loan defaulted.

        Returns:
            (pool_id, loan_id) of each loan defaulted in this step.
        """
        self.clock.advance_time(timestamp)
        executed: List[Tuple[str, int]] = []
        for pool in self.pools:
            if pool.paused:
                continue
            for loan_id in pool.loan_ledger.overdue_loans():
                if self.verbose:
                    print(f"[LIFECYCLE] Defaulting loan {loan_id} in {pool.pool_id}")
                pool.mark_default(self.keeper, loan_id)
                executed.append((pool.pool_id, loan_id))
        self.defaulted.extend(executed)
        return executed

    def run(self, timestamps: Iterable[datetime]) -> List[Tuple[str, int]]:
        """Step through each timestamp in order."""
        executed: List[Tuple[str, int]] = []
        for timestamp in timestamps:
            executed.extend(self.step(timestamp))
        return executed
