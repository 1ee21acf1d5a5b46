"""
reputation.py - Borrower Credit Score Registry

A clamped 0-100 counter per borrower. Pools raise a borrower's score on
full repayment and lower it on default; administrators may set a score
directly (e.g. onboarding a borrower with an off-ledger history).

increase() and decrease() never fail for a valid u8 delta: results are
clamped into [MIN_SCORE, MAX_SCORE].
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .access import Capability
from .core import Authorizer, Clock, MAX_SCORE, MIN_SCORE, Unauthorized
from .numeric import U8_MAX, require_uint


class CreditScoreRegistry:
    """
    Reputation store shared by every pool.

    Args:
        authorizer: Capability source for set_score()
        initial_score: Score of a borrower never seen before (default 0)
        clock: Optional clock used to timestamp score history
    """

    def __init__(
        self,
        authorizer: Authorizer,
        initial_score: int = MIN_SCORE,
        clock: Optional[Clock] = None,
    ):
        require_uint(initial_score, "initial_score", MAX_SCORE)
        self.authorizer = authorizer
        self.initial_score = initial_score
        self.clock = clock
        self._scores: Dict[str, int] = {}
        self._history: Dict[str, List[Tuple[Optional[datetime], int, str]]] = {}

    def score(self, user: str) -> int:
        return self._scores.get(user, self.initial_score)

    def increase(self, user: str, delta: int) -> None:
        require_uint(delta, "delta", U8_MAX)
        self._store(user, min(MAX_SCORE, self.score(user) + delta), f"+{delta}")

    def decrease(self, user: str, delta: int) -> None:
        require_uint(delta, "delta", U8_MAX)
        self._store(user, max(MIN_SCORE, self.score(user) - delta), f"-{delta}")

    def set_score(self, caller: str, user: str, score: int) -> None:
        """
        Raises:
            Unauthorized: If caller lacks SET_SCORE.
            InvalidAmount: If score is outside [0, 100].
        """
        if not self.authorizer.has_capability(caller, Capability.SET_SCORE):
            raise Unauthorized(f"{caller} lacks capability {Capability.SET_SCORE.value}")
        require_uint(score, "score", MAX_SCORE)
        self._store(user, score, f"set by {caller}")

    def history(self, user: str) -> List[Tuple[Optional[datetime], int, str]]:
        """(timestamp, new_score, reason) for every change to user's score."""
        return list(self._history.get(user, ()))

    def _store(self, user: str, score: int, reason: str) -> None:
        timestamp = self.clock.current_time if self.clock else None
        self._scores[user] = score
        self._history.setdefault(user, []).append((timestamp, score, reason))
