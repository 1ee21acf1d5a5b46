"""
treasury.py - Protocol Fee Sink

The treasury owns a wallet on the funding asset. Pools move the reserve
share of collected interest into that wallet and then call receive(),
which books the fee. receive() refuses to book value that has not
arrived, so a pool that forgets the transfer fails its repayment instead
of silently over-reporting fees.
"""

from __future__ import annotations
from typing import List

from .access import Capability
from .core import Authorizer, FundingAsset, TransferFailed, Unauthorized
from .numeric import checked_add, require_positive, require_uint


class Treasury:
    """
    Fee sink with admin-controlled withdrawal.

    Attributes:
        total_fees_received: Cumulative fees booked through receive()
        total_withdrawn: Cumulative value paid out through withdraw()
    """

    def __init__(
        self,
        asset: FundingAsset,
        authorizer: Authorizer,
        account: str = "treasury",
    ):
        self.asset = asset
        self.authorizer = authorizer
        self._account = account
        self.total_fees_received = 0
        self.total_withdrawn = 0
        self.receipts: List[int] = []

    @property
    def account(self) -> str:
        return self._account

    @property
    def balance(self) -> int:
        return self.asset.balance_of(self._account)

    def receive(self, amount: int) -> None:
        """
        Book a fee that has already been moved into the treasury account.

        Raises:
            TransferFailed: If the account balance does not cover the
                            booked fees net of withdrawals.
        """
        require_uint(amount, "amount")
        booked = max(0, checked_add(self.total_fees_received, amount) - self.total_withdrawn)
        if self.balance < booked:
            raise TransferFailed(
                f"Treasury holds {self.balance}, cannot book {amount} (booked {booked})"
            )
        self.total_fees_received += amount
        self.receipts.append(amount)

    def withdraw(self, caller: str, to: str, amount: int) -> None:
        """
        Raises:
            Unauthorized: If caller lacks TREASURY_ADMIN.
            InsufficientBalance: If the treasury cannot cover amount.
        """
        if not self.authorizer.has_capability(caller, Capability.TREASURY_ADMIN):
            raise Unauthorized(f"{caller} lacks capability {Capability.TREASURY_ADMIN.value}")
        require_positive(amount, "amount")
        self.asset.transfer(self._account, to, amount)
        self.total_withdrawn += amount
