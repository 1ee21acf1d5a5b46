"""
access.py - Capability-Based Access Control

Roles are modeled as a set-valued mapping from principal to capability
tags. Privileged pool operations query has_capability() before mutating
anything.

Role presets bundle capabilities the way the deployment grants them:
    admin          -> every capability
    manager        -> approve loans, mark defaults, update parameters
    pauser         -> pause and unpause
    treasury_admin -> withdraw collected fees
    pool           -> adjust reputation scores
"""

from __future__ import annotations
from collections import defaultdict
from enum import Enum
from typing import Dict, FrozenSet, Set

from .core import Unauthorized


class Capability(str, Enum):
    """Capability tags checked by pool components."""
    ADMIN = "admin"                       # grant and revoke capabilities
    APPROVE_LOAN = "approve_loan"
    MARK_DEFAULT = "mark_default"
    SET_PARAMS = "set_params"
    PAUSE = "pause"
    CREATE_POOL = "create_pool"
    SET_SCORE = "set_score"
    TREASURY_ADMIN = "treasury_admin"


ROLE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    'admin': frozenset(Capability),
    'manager': frozenset({
        Capability.APPROVE_LOAN, Capability.MARK_DEFAULT, Capability.SET_PARAMS,
    }),
    'pauser': frozenset({Capability.PAUSE}),
    'treasury_admin': frozenset({Capability.TREASURY_ADMIN}),
    'pool': frozenset({Capability.SET_SCORE}),
}


class AccessControl:
    """
    Principal -> capability registry.

    The principal passed at construction starts with every capability.

    Example:
        access = AccessControl("deployer")
        access.grant_role("deployer", "ops", "manager")
        access.has_capability("ops", Capability.APPROVE_LOAN)  # True
    """

    def __init__(self, admin: str):
        if not admin:
            raise ValueError("Admin principal cannot be empty")
        self._capabilities: Dict[str, Set[str]] = defaultdict(set)
        self._capabilities[admin] = {c.value for c in Capability}

    def has_capability(self, caller: str, action: str) -> bool:
        return _tag(action) in self._capabilities.get(caller, ())

    def require(self, caller: str, action: str) -> None:
        """
        Raises:
            Unauthorized: If caller lacks the capability.
        """
        if not self.has_capability(caller, action):
            raise Unauthorized(f"{caller} lacks capability {_tag(action)}")

    def capabilities_of(self, principal: str) -> FrozenSet[str]:
        return frozenset(self._capabilities.get(principal, ()))

    def grant(self, caller: str, principal: str, capability: str) -> None:
        self.require(caller, Capability.ADMIN)
        if not principal:
            raise ValueError("Principal cannot be empty")
        self._capabilities[principal].add(_tag(capability))

    def revoke(self, caller: str, principal: str, capability: str) -> None:
        self.require(caller, Capability.ADMIN)
        self._capabilities.get(principal, set()).discard(_tag(capability))

    def grant_role(self, caller: str, principal: str, role: str) -> None:
        """Grant every capability of a preset role."""
        if role not in ROLE_CAPABILITIES:
            raise ValueError(f"Unknown role: {role}")
        self.require(caller, Capability.ADMIN)
        for capability in ROLE_CAPABILITIES[role]:
            self._capabilities[principal].add(capability.value)


def _tag(action) -> str:
    return action.value if isinstance(action, Capability) else str(action)
