"""
tokens.py - Integer-Balance Token Ledger

TokenLedger is the fungible-value transfer primitive the pool is built on.
The same class backs two tokens:

    - the funding asset (e.g. a 6-decimal stablecoin) that depositors and
      borrowers move in and out of the pool
    - the pool's share token, minted on deposit and burned on withdrawal

Key responsibilities:
    - All-or-nothing transfers: validate, then apply; a failed transfer
      changes nothing
    - Issuance and redemption through SYSTEM_WALLET (mint/burn), so that
      conservation can be checked: sum(balances) == total_supply
    - Audit trail of every applied movement
    - snapshot()/restore() so a caller can roll back a multi-step operation
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, List, Optional, Tuple

from .core import Clock, InsufficientBalance, InvalidAmount
from .numeric import checked_add, checked_sub, require_positive


# Reserved wallet for issuance and redemption. Exempt from balance checks.
SYSTEM_WALLET = "system"


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """
    Immutable record of an applied token movement.

    Mints come from SYSTEM_WALLET, burns go to SYSTEM_WALLET.
    """
    sequence_number: int
    timestamp: Optional[datetime]
    source: str
    dest: str
    amount: int
    memo: str = ""

    def __repr__(self) -> str:
        return f"Transfer(#{self.sequence_number} {self.amount}: {self.source}→{self.dest})"


def to_display_units(amount: int, decimals: int) -> Decimal:
    """
    Convert base units to a human-readable Decimal.

    Example:
        >>> to_display_units(1_500_000, 6)
        Decimal('1.500000')
    """
    quantizer = Decimal(10) ** -decimals
    return (Decimal(amount) / (Decimal(10) ** decimals)).quantize(quantizer, rounding=ROUND_DOWN)


def to_base_units(value, decimals: int) -> int:
    """Convert a display amount (str, int or Decimal) to base units, truncating dust."""
    scaled = Decimal(str(value)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


class TokenLedger:
    """
    Balance ledger for one fungible token.

    Thread Safety:
        Not thread-safe. Each pool serializes its own operations.

    Example:
        usdc = TokenLedger("mUSDC", "Mock USDC", decimals=6)
        usdc.mint("alice", 1_000_000_000)
        usdc.transfer("alice", "pool-1", 250_000_000)
    """

    def __init__(
        self,
        symbol: str,
        name: str = "",
        decimals: int = 18,
        clock: Optional[Clock] = None,
        verbose: bool = False,
    ):
        if not symbol or not symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        self.symbol = symbol
        self.name = name or symbol
        self.decimals = decimals
        self.clock = clock
        self.verbose = verbose
        self.balances: Dict[str, int] = defaultdict(int)
        self._total_supply = 0
        self.transfer_log: List[TransferRecord] = []
        self._next_sequence = 0

    # ========================================================================
    # READS
    # ========================================================================

    def balance_of(self, wallet: str) -> int:
        return self.balances.get(wallet, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def holders(self) -> Dict[str, int]:
        """All non-zero balances, excluding the system wallet."""
        return {
            w: b for w, b in sorted(self.balances.items())
            if b != 0 and w != SYSTEM_WALLET
        }

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Check that the sum of all holder balances equals total supply.

        Holders are summed in sorted order for deterministic accumulation.

        Returns:
            Dict with 'valid', 'supply' and 'sum_of_balances'.
        """
        summed = sum(b for _, b in sorted(self.holders().items()))
        return {
            'valid': summed == self._total_supply,
            'supply': self._total_supply,
            'sum_of_balances': summed,
        }

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def transfer(self, source: str, dest: str, amount: int, memo: str = "") -> None:
        """
        Move amount from source to dest atomically.

        Raises:
            InvalidAmount: If amount is not a positive u256 or wallets are invalid.
            InsufficientBalance: If source cannot cover amount.
        """
        require_positive(amount, "amount")
        if not source or not dest:
            raise InvalidAmount("Transfer source and dest cannot be empty")
        if source == dest:
            raise InvalidAmount("Source and dest must be different")
        if SYSTEM_WALLET in (source, dest):
            raise InvalidAmount("Use mint() or burn() to move value through the system wallet")
        self._apply(source, dest, amount, memo)

    def mint(self, to: str, amount: int, memo: str = "mint") -> None:
        """Issue new tokens to a wallet."""
        require_positive(amount, "amount")
        self._total_supply = checked_add(self._total_supply, amount)
        self.balances[to] = checked_add(self.balances[to], amount)
        self._record(SYSTEM_WALLET, to, amount, memo)

    def burn(self, holder: str, amount: int, memo: str = "burn") -> None:
        """
        Redeem tokens from a wallet.

        Raises:
            InsufficientBalance: If holder has fewer than amount tokens.
        """
        require_positive(amount, "amount")
        if self.balance_of(holder) < amount:
            self._reject(f"{holder} {self.symbol}: burn {amount} > balance {self.balance_of(holder)}")
        self.balances[holder] -= amount
        self._total_supply = checked_sub(self._total_supply, amount)
        self._record(holder, SYSTEM_WALLET, amount, memo)

    def _apply(self, source: str, dest: str, amount: int, memo: str) -> None:
        # Validate fully before touching either balance
        available = self.balance_of(source)
        if available < amount:
            self._reject(f"{source} {self.symbol}: {amount} > balance {available}")
        new_dest = checked_add(self.balance_of(dest), amount)
        self.balances[source] = available - amount
        self.balances[dest] = new_dest
        self._record(source, dest, amount, memo)

    def _reject(self, reason: str) -> None:
        if self.verbose:
            print(f"✗ REJECTED [{self.symbol}]: {reason}")
        raise InsufficientBalance(reason)

    def _record(self, source: str, dest: str, amount: int, memo: str) -> None:
        record = TransferRecord(
            sequence_number=self._next_sequence,
            timestamp=self.clock.current_time if self.clock else None,
            source=source,
            dest=dest,
            amount=amount,
            memo=memo,
        )
        self._next_sequence += 1
        self.transfer_log.append(record)
        if self.verbose:
            print(f"✓ {self.symbol} {amount}: {source} → {dest} {memo}".rstrip())

    # ========================================================================
    # ROLLBACK SUPPORT
    # ========================================================================

    def snapshot(self) -> Tuple[Dict[str, int], int, int, int]:
        """Capture everything restore() needs to undo later movements."""
        return (dict(self.balances), self._total_supply, len(self.transfer_log), self._next_sequence)

    def restore(self, snapshot: Tuple[Dict[str, int], int, int, int]) -> None:
        balances, supply, log_length, sequence = snapshot
        self.balances = defaultdict(int, balances)
        self._total_supply = supply
        del self.transfer_log[log_length:]
        self._next_sequence = sequence

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol}, supply={self._total_supply}, holders={len(self.holders())})"
