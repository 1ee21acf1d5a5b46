"""
loan_ledger.py - Loan Records, Interest Accrual and Repayment Waterfall

The LoanLedger exclusively owns every LoanRecord. Pools hold loan ids and
go through this interface; they never touch a record directly.

ARCHITECTURE:
=============

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters
   - No ledger, no clock, no hidden state

2. LoanLedger:
   - Arena of LoanRecords keyed by a monotonic id starting at 1
   - Enforces the state machine
         REQUESTED -> APPROVED -> DRAWN -> {REPAID | DEFAULTED}
   - Reads hand out copies; records are never deleted

Key Formulas:
    elapsed_days = floor((now - drawn_at) / 1 day)
    interest     = principal * rate_bps * elapsed_days // (10000 * 365)
    total_debt   = principal + interest

Partial repayments pay interest first, then principal.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .core import (
    Clock, DebtBreakdown, InvalidAmount, InvalidTransition, LoanNotFound,
    LoanRecord, LoanStatus, RepaymentResult,
    MAX_BPS, MAX_TENOR_DAYS, MIN_TENOR_DAYS,
)
from .numeric import (
    U16_MAX, add_days, checked_add, elapsed_days, require_positive,
    require_uint, simple_interest,
)


# Legal forward transitions of the loan state machine.
_TRANSITIONS: Dict[LoanStatus, Tuple[LoanStatus, ...]] = {
    LoanStatus.REQUESTED: (LoanStatus.APPROVED,),
    LoanStatus.APPROVED: (LoanStatus.DRAWN,),
    LoanStatus.DRAWN: (LoanStatus.REPAID, LoanStatus.DEFAULTED),
    LoanStatus.REPAID: (),
    LoanStatus.DEFAULTED: (),
}


# ============================================================================
# PURE CALCULATION FUNCTIONS - No Ledger, All Inputs Explicit
# ============================================================================

def calculate_interest(
    principal: int,
    rate_bps: int,
    drawn_at: Optional[datetime],
    current_time: datetime,
) -> int:
    """
    Interest accrued on a drawn loan.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Interest accrues in whole days only, so it is exactly zero until one
    full day has passed since drawdown, and every day boundary rounds down.

    Example:
        # 1000 at 500 bps after 30 days: 1000*500*30 // 3650000 = 4
        calculate_interest(1000, 500, t0, t0 + timedelta(days=30))  # 4
    """
    if drawn_at is None:
        return 0
    return simple_interest(principal, rate_bps, elapsed_days(drawn_at, current_time))


def calculate_repayment_split(
    amount: int,
    principal: int,
    interest: int,
) -> Tuple[int, int, int, bool]:
    """
    Apply the interest-first waterfall to a repayment.

    PURE FUNCTION - All inputs explicit.

    Args:
        amount: Value repaid
        principal: Outstanding principal before the repayment
        interest: Accrued interest before the repayment

    Returns:
        (interest_paid, principal_paid, remaining, fully_repaid)

    A full repayment (amount >= principal + interest) clears both; any
    excess is not refunded here and not counted as paid.
    """
    total_debt = principal + interest
    if amount >= total_debt:
        return interest, principal, 0, True
    interest_paid = min(amount, interest)
    principal_paid = amount - interest_paid
    return interest_paid, principal_paid, total_debt - amount, False


# ============================================================================
# LOAN LEDGER
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanLedgerSnapshot:
    """Opaque rollback point produced by LoanLedger.snapshot()."""
    loans: Tuple[LoanRecord, ...]
    next_id: int


class LoanLedger:
    """
    Owner of all loan records of one pool.

    Every operation reads the current time from the shared clock.

    Example:
        ledger = LoanLedger(Clock(datetime(2025, 1, 1)))
        loan_id = ledger.create_loan("alice", 1000, 500, 90)
        ledger.approve(loan_id)
        ledger.drawdown(loan_id)
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._loans: Dict[int, LoanRecord] = {}
        self._next_id = 1

    @property
    def current_time(self) -> datetime:
        return self.clock.current_time

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def loan_count(self) -> int:
        return len(self._loans)

    def get_loan(self, loan_id: int) -> LoanRecord:
        """
        Return a copy of a loan record.

        Raises:
            LoanNotFound: If no loan has this id.
        """
        return replace(self._get(loan_id))

    def loans(self) -> List[LoanRecord]:
        """Copies of every loan, in id order."""
        return [replace(self._loans[i]) for i in sorted(self._loans)]

    def loans_by_borrower(self, borrower: str) -> List[LoanRecord]:
        return [loan for loan in self.loans() if loan.borrower == borrower]

    def current_debt(self, loan_id: int) -> DebtBreakdown:
        """
        Outstanding debt of a drawn loan at the current time.

        late_fees is reserved and always zero.

        Raises:
            LoanNotFound: If no loan has this id.
            InvalidTransition: If the loan is not DRAWN.
        """
        loan = self._get(loan_id)
        self._require_status(loan, LoanStatus.DRAWN, "current_debt")
        interest = calculate_interest(loan.principal, loan.rate_bps, loan.drawn_at, self.current_time)
        return DebtBreakdown(
            principal=loan.principal,
            interest=interest,
            late_fees=0,
            total=checked_add(loan.principal, interest),
        )

    def is_defaultable(self, loan_id: int) -> bool:
        loan = self._get(loan_id)
        return loan.status == LoanStatus.DRAWN and self.current_time > loan.due_at

    def overdue_loans(self) -> List[int]:
        """Ids of DRAWN loans whose due date has passed."""
        now = self.current_time
        return [
            loan_id for loan_id in sorted(self._loans)
            if self._loans[loan_id].status == LoanStatus.DRAWN
            and now > self._loans[loan_id].due_at
        ]

    # ========================================================================
    # LIFECYCLE (Mutating)
    # ========================================================================

    def create_loan(self, borrower: str, amount: int, rate_bps: int, tenor_days: int) -> int:
        """
        Record a new loan request.

        No interest accrues and no value moves until drawdown.

        Returns:
            The new loan id.

        Raises:
            InvalidAmount: If amount is zero, borrower is empty, or the
                           rate or tenor is out of range.
        """
        if not borrower or not str(borrower).strip():
            raise InvalidAmount("Borrower cannot be empty")
        require_positive(amount, "amount")
        require_uint(rate_bps, "rate_bps", min(MAX_BPS, U16_MAX))
        require_uint(tenor_days, "tenor_days", MAX_TENOR_DAYS, min_value=MIN_TENOR_DAYS)

        now = self.current_time
        loan_id = self._next_id
        self._next_id += 1
        self._loans[loan_id] = LoanRecord(
            loan_id=loan_id,
            borrower=borrower,
            principal=amount,
            rate_bps=rate_bps,
            tenor_days=tenor_days,
            created_at=now,
            original_principal=amount,
            history=((LoanStatus.REQUESTED, now),),
        )
        return loan_id

    def approve(self, loan_id: int) -> None:
        loan = self._get(loan_id)
        self._transition(loan, LoanStatus.APPROVED)

    def drawdown(self, loan_id: int) -> None:
        """
        Start the loan clock: stamp drawn_at and due_at.

        Disbursing principal is the caller's job.
        """
        loan = self._get(loan_id)
        self._require_status(loan, LoanStatus.APPROVED, "drawdown")
        now = self.current_time
        loan.drawn_at = now
        loan.due_at = add_days(now, loan.tenor_days)
        self._transition(loan, LoanStatus.DRAWN)

    def repay(self, loan_id: int, amount: int) -> RepaymentResult:
        """
        Apply a repayment to a drawn loan.

        Full repayment moves the loan to REPAID and zeroes principal.
        Partial repayment pays accrued interest first, then principal.

        Raises:
            InvalidAmount: If amount is not positive.
            LoanNotFound: If no loan has this id.
            InvalidTransition: If the loan is not DRAWN.
        """
        require_positive(amount, "amount")
        loan = self._get(loan_id)
        self._require_status(loan, LoanStatus.DRAWN, "repay")

        interest = calculate_interest(loan.principal, loan.rate_bps, loan.drawn_at, self.current_time)
        interest_paid, principal_paid, remaining, fully_repaid = calculate_repayment_split(
            amount, loan.principal, interest
        )

        loan.principal -= principal_paid
        loan.total_interest_paid += interest_paid
        loan.total_principal_paid += principal_paid
        if fully_repaid:
            loan.principal = 0
            self._transition(loan, LoanStatus.REPAID)

        return RepaymentResult(
            loan_id=loan_id,
            amount=amount,
            interest_paid=interest_paid,
            principal_paid=principal_paid,
            remaining=remaining,
            fully_repaid=fully_repaid,
        )

    def mark_default(self, loan_id: int) -> None:
        """
        Raises:
            InvalidTransition: If the loan is not DRAWN or not yet past due.
        """
        loan = self._get(loan_id)
        self._require_status(loan, LoanStatus.DRAWN, "mark_default")
        if not self.current_time > loan.due_at:
            raise InvalidTransition(
                f"Loan {loan_id} is not past due: due {loan.due_at}, now {self.current_time}"
            )
        self._transition(loan, LoanStatus.DEFAULTED)

    # ========================================================================
    # ROLLBACK SUPPORT
    # ========================================================================

    def snapshot(self) -> LoanLedgerSnapshot:
        return LoanLedgerSnapshot(
            loans=tuple(replace(loan) for loan in self._loans.values()),
            next_id=self._next_id,
        )

    def restore(self, snapshot: LoanLedgerSnapshot) -> None:
        self._loans = {loan.loan_id: replace(loan) for loan in snapshot.loans}
        self._next_id = snapshot.next_id

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _get(self, loan_id: int) -> LoanRecord:
        loan = self._loans.get(loan_id)
        if loan is None:
            raise LoanNotFound(f"Loan {loan_id} not found")
        return loan

    @staticmethod
    def _require_status(loan: LoanRecord, expected: LoanStatus, operation: str) -> None:
        if loan.status != expected:
            raise InvalidTransition(
                f"{operation} requires loan {loan.loan_id} to be {expected.value}, "
                f"it is {loan.status.value}"
            )

    def _transition(self, loan: LoanRecord, new_status: LoanStatus) -> None:
        if new_status not in _TRANSITIONS[loan.status]:
            raise InvalidTransition(
                f"Loan {loan.loan_id}: {loan.status.value} -> {new_status.value} not allowed"
            )
        loan.status = new_status
        loan.history = loan.history + ((new_status, self.current_time),)
