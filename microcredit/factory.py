"""
factory.py - Pool Registry and Factory

Creates pools that share one funding asset, reputation store, fee sink,
authorizer and clock. Parameters are validated before any pool object is
built, so a rejected create_pool() leaves no trace in the registry.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from .access import Capability
from .core import (
    Authorizer, Clock, FeeSink, FundingAsset, ReputationStore, Unauthorized,
    coerce_params,
)
from .vault import ShareVault


class PoolFactory:
    """
    Builds and tracks ShareVault instances.

    Example:
        factory = PoolFactory(usdc, registry, treasury, access, clock)
        pool = factory.create_pool("deployer", EXAMPLE_POOL_PARAMS,
                                   "MicroCredit Test Pool", "MCTP")
    """

    def __init__(
        self,
        asset: FundingAsset,
        reputation: ReputationStore,
        fee_sink: FeeSink,
        authorizer: Authorizer,
        clock: Optional[Clock] = None,
        verbose: bool = False,
    ):
        self.asset = asset
        self.reputation = reputation
        self.fee_sink = fee_sink
        self.authorizer = authorizer
        self.clock = clock or Clock()
        self.verbose = verbose
        self._pools: Dict[str, ShareVault] = {}

    def create_pool(self, caller: str, params: Any, name: str, symbol: str) -> ShareVault:
        """
        Validate parameters and build a new pool.

        Raises:
            Unauthorized: If caller lacks CREATE_POOL.
            InvalidParameters: If params violate their bounds.
            ValueError: If name or symbol is empty.
        """
        if not self.authorizer.has_capability(caller, Capability.CREATE_POOL):
            raise Unauthorized(f"{caller} lacks capability {Capability.CREATE_POOL.value}")
        validated = coerce_params(params)
        if not name or not symbol:
            raise ValueError("Pool name and symbol cannot be empty")

        pool_id = f"pool-{len(self._pools) + 1}"
        pool = ShareVault(
            validated,
            asset=self.asset,
            reputation=self.reputation,
            fee_sink=self.fee_sink,
            authorizer=self.authorizer,
            clock=self.clock,
            name=name,
            symbol=symbol,
            pool_id=pool_id,
            verbose=self.verbose,
        )
        self._pools[pool_id] = pool
        if self.verbose:
            print(f"📝 Created: {pool_id} {name} ({symbol}) {validated.to_dict()}")
        return pool

    def get_pools(self) -> List[ShareVault]:
        """Pools in creation order."""
        return list(self._pools.values())

    def get_pool_count(self) -> int:
        return len(self._pools)

    def get_pool(self, pool_id: str) -> ShareVault:
        if pool_id not in self._pools:
            raise KeyError(f"Pool {pool_id} not found")
        return self._pools[pool_id]
