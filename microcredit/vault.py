"""
vault.py - Share Vault: Pooled Deposits and Loan Funding

The ShareVault is the stateful heart of a pool. It converts deposits into
proportional ownership shares, tracks the pool's aggregate assets, funds
loans through its LoanLedger and books repayments.

Key responsibilities:
    - Share exchange rate: shares = amount * total_shares // total_assets
      on deposit, amount = shares * total_assets // total_shares on
      withdrawal. Both round down, in the pool's favor.
    - Loan gating: max loan-to-pool ratio and minimum reputation score
    - Repayment reconciliation: principal and interest paid are derived
      from before/after snapshots of the loan, a reserve share of interest
      goes to the fee sink, the rest back into total_assets
    - Reputation feedback on repayment and default
    - Capability checks before every privileged operation

Operation guarantees:
    - Atomic: every mutating operation either completes or leaves the
      vault, its loan ledger, its share token and the funding asset
      exactly as they were
    - Serialized: a busy flag rejects reentrant calls made by
      collaborators while an operation is in flight
    - Internal state is updated before any value leaves the pool
    - Always logs: every applied operation appends a PoolEvent

Accounting model:
    total_assets is the idle value the pool can pay out. Drawdowns move
    principal out of it; repayments bring principal and net interest back.
    A default changes nothing: the unrecovered principal has already left
    total_assets, so the loss is shared by all depositors through the
    share price.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .access import Capability
from .core import (
    Authorizer, Clock, DebtBreakdown, FeeSink, FundingAsset, LoanRecord,
    LoanStatus, PoolEvent, PoolParameters, RepaymentReceipt, ReputationStore,
    ExceedsPoolRatio, InsolventPool, InsufficientBalance, InvalidAmount,
    InvalidTransition, LowScore, NothingToWithdraw, PoolPaused, ReentrantCall,
    Unauthorized, ZeroAmount,
    DEFAULT_SCORE_PENALTY, REPAY_SCORE_BONUS,
    EVENT_DEPOSIT, EVENT_LOAN_APPROVED, EVENT_LOAN_DEFAULTED, EVENT_LOAN_DRAWN,
    EVENT_LOAN_REPAID, EVENT_LOAN_REQUESTED, EVENT_PARAMS_UPDATED,
    EVENT_PAUSED, EVENT_UNPAUSED, EVENT_WITHDRAW,
    coerce_params,
)
from .loan_ledger import LoanLedger
from .numeric import bps_of, checked_add, checked_sub, mul_div, require_positive
from .tokens import TokenLedger


class ShareVault:
    """
    A lending pool: share vault fused with its loan ledger.

    Every mutating method takes the acting principal as `caller`.

    Thread Safety:
        Not thread-safe. One pool serializes its own operations.

    Example:
        pool = ShareVault(EXAMPLE_POOL_PARAMS, usdc, registry, treasury, access)
        pool.deposit("alice", 1000)
        loan_id = pool.request_loan("bob", 400)
        pool.approve_loan("manager", loan_id)
        pool.drawdown("bob", loan_id)
    """

    def __init__(
        self,
        params: Any,
        asset: FundingAsset,
        reputation: ReputationStore,
        fee_sink: FeeSink,
        authorizer: Authorizer,
        clock: Optional[Clock] = None,
        name: str = "MicroCredit Pool",
        symbol: str = "MCP",
        pool_id: str = "pool",
        verbose: bool = False,
    ):
        """
        Create a pool.

        Args:
            params: PoolParameters or a mapping of them; validated before
                    anything else is built
            asset: Funding asset the pool is denominated in
            reputation: Borrower score store
            fee_sink: Receiver of the reserve share of interest
            authorizer: Capability source for privileged operations
            clock: Shared logical clock (a fresh one if omitted)
            name: Share token name
            symbol: Share token symbol
            pool_id: Wallet id of the pool on the funding asset
            verbose: Print one line per applied or rejected operation

        Raises:
            InvalidParameters: If params violate their bounds.
        """
        self._params: PoolParameters = coerce_params(params)
        if not pool_id:
            raise ValueError("pool_id cannot be empty")
        self.asset = asset
        self.reputation = reputation
        self.fee_sink = fee_sink
        self.authorizer = authorizer
        self.clock = clock or Clock()
        self.name = name
        self.symbol = symbol
        self.pool_id = pool_id
        self.verbose = verbose

        self.shares = TokenLedger(
            symbol, name, decimals=getattr(asset, 'decimals', 18), clock=self.clock
        )
        self.loan_ledger = LoanLedger(self.clock)
        self._total_assets = 0
        self._paused = False
        self._entered = False
        self.events: List[PoolEvent] = []
        self._next_sequence = 0

    # ========================================================================
    # VIEWS
    # ========================================================================

    @property
    def params(self) -> PoolParameters:
        return self._params

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def total_assets(self) -> int:
        return self._total_assets

    @property
    def total_shares(self) -> int:
        return self.shares.total_supply()

    @property
    def current_time(self):
        return self.clock.current_time

    def share_balance(self, holder: str) -> int:
        return self.shares.balance_of(holder)

    def convert_to_shares(self, amount: int) -> int:
        """
        Shares minted for depositing amount at the current rate.

        Raises:
            InsolventPool: If shares are outstanding but total_assets is 0.
        """
        total_shares = self.total_shares
        if total_shares == 0:
            return amount
        if self._total_assets == 0:
            raise InsolventPool(
                f"{total_shares} shares outstanding against zero assets"
            )
        return mul_div(amount, total_shares, self._total_assets)

    def convert_to_assets(self, shares: int) -> int:
        """Value redeemable for shares at the current rate."""
        total_shares = self.total_shares
        if total_shares == 0:
            return 0
        return mul_div(shares, self._total_assets, total_shares)

    def max_loan_amount(self) -> int:
        return bps_of(self._total_assets, self._params.max_loan_to_pool_bps)

    def get_loan(self, loan_id: int) -> LoanRecord:
        return self.loan_ledger.get_loan(loan_id)

    def current_debt(self, loan_id: int) -> DebtBreakdown:
        return self.loan_ledger.current_debt(loan_id)

    def check_solvency(self) -> Dict[str, Any]:
        """
        Verify that total_assets is backed by value actually held.

        The pool may hold more than total_assets (e.g. donations), never less.
        """
        held = self.asset.balance_of(self.pool_id)
        return {
            'valid': self._total_assets <= held,
            'total_assets': self._total_assets,
            'held': held,
            'surplus': held - self._total_assets,
        }

    # ========================================================================
    # DEPOSITS AND WITHDRAWALS
    # ========================================================================

    def deposit(self, caller: str, amount: int) -> int:
        """
        Deposit amount and mint shares at the pre-deposit rate.

        Returns:
            Shares minted.

        Raises:
            InvalidAmount: If amount is not positive.
            ZeroAmount: If the deposit is too small to mint a share.
            InsolventPool: If shares exist but total_assets is 0.
            InsufficientBalance: If caller cannot fund the deposit.
        """
        with self._operation("deposit"):
            require_positive(amount, "amount")
            minted = self.convert_to_shares(amount)
            if minted == 0:
                raise ZeroAmount(
                    f"Deposit of {amount} mints zero shares "
                    f"({self.total_shares} shares / {self._total_assets} assets)"
                )
            self.asset.transfer(caller, self.pool_id, amount)
            self._total_assets = checked_add(self._total_assets, amount)
            self.shares.mint(caller, minted)
            self._emit(EVENT_DEPOSIT, caller, amount=amount, shares=minted)
        return minted

    def withdraw(self, caller: str, shares: int) -> int:
        """
        Burn shares and pay out their value.

        Returns:
            Amount paid out.

        Raises:
            InvalidAmount: If shares is not positive.
            InsufficientBalance: If caller holds fewer shares.
            NothingToWithdraw: If the shares are worth zero after rounding.
        """
        with self._operation("withdraw"):
            require_positive(shares, "shares")
            held = self.shares.balance_of(caller)
            if held < shares:
                raise InsufficientBalance(f"{caller} holds {held} shares, requested {shares}")
            amount = self.convert_to_assets(shares)
            if amount == 0:
                raise NothingToWithdraw(f"{shares} shares redeem for zero")
            # Burn and book before value leaves the pool
            self.shares.burn(caller, shares)
            self._total_assets = checked_sub(self._total_assets, amount)
            self.asset.transfer(self.pool_id, caller, amount)
            self._emit(EVENT_WITHDRAW, caller, shares=shares, amount=amount)
        return amount

    # ========================================================================
    # LOAN LIFECYCLE
    # ========================================================================

    def request_loan(self, caller: str, amount: int) -> int:
        """
        Request a loan at the pool's current rate and tenor.

        The ratio cap is checked before the credit score.

        Returns:
            The new loan id.

        Raises:
            ExceedsPoolRatio: If amount exceeds max_loan_to_pool_bps of total_assets.
            LowScore: If the borrower's score is below min_credit_score.
        """
        with self._operation("request_loan"):
            require_positive(amount, "amount")
            limit = self.max_loan_amount()
            if amount > limit:
                raise ExceedsPoolRatio(f"Loan {amount} exceeds pool limit {limit}")
            minimum = self._params.min_credit_score
            if minimum > 0:
                score = self.reputation.score(caller)
                if score < minimum:
                    raise LowScore(f"{caller} score {score} below minimum {minimum}")
            loan_id = self.loan_ledger.create_loan(
                caller, amount, self._params.interest_rate_bps, self._params.tenor_days
            )
            self._emit(EVENT_LOAN_REQUESTED, caller, loan_id=loan_id, amount=amount)
        return loan_id

    def approve_loan(self, caller: str, loan_id: int) -> None:
        with self._operation("approve_loan"):
            self._require_capability(caller, Capability.APPROVE_LOAN)
            self.loan_ledger.approve(loan_id)
            self._emit(EVENT_LOAN_APPROVED, caller, loan_id=loan_id)

    def drawdown(self, caller: str, loan_id: int) -> int:
        """
        Disburse an approved loan to its borrower.

        Principal is read before the ledger transition, since the ledger
        does not report it from drawdown().

        Returns:
            Principal paid out.

        Raises:
            Unauthorized: If caller is not the borrower.
            InvalidTransition: If the loan is not APPROVED.
            InsufficientBalance: If principal exceeds total_assets.
        """
        with self._operation("drawdown"):
            loan = self.loan_ledger.get_loan(loan_id)
            if loan.borrower != caller:
                raise Unauthorized(f"{caller} is not the borrower of loan {loan_id}")
            principal = loan.principal
            self.loan_ledger.drawdown(loan_id)
            if principal > self._total_assets:
                raise InsufficientBalance(
                    f"Loan {loan_id} principal {principal} exceeds pool assets {self._total_assets}"
                )
            self._total_assets -= principal
            self.asset.transfer(self.pool_id, caller, principal)
            self._emit(EVENT_LOAN_DRAWN, caller, loan_id=loan_id, principal=principal)
        return principal

    def repay(self, caller: str, loan_id: int, amount: int) -> RepaymentReceipt:
        """
        Repay a drawn loan, in full or in part. Anyone may repay.

        The split is derived from snapshots of the loan around the ledger
        call: principal_paid is the drop in outstanding principal and the
        rest of the inflow is interest. The ledger's own RepaymentResult is
        recorded in the event for audit only.

        Returns:
            RepaymentReceipt with the booked figures.

        Raises:
            InvalidAmount: If amount is not positive or exceeds total debt.
            InvalidTransition: If the loan is not DRAWN.
            TransferFailed: If the fee sink rejects the fee.
        """
        with self._operation("repay"):
            require_positive(amount, "amount")
            before = self.loan_ledger.current_debt(loan_id)
            if amount > before.total:
                raise InvalidAmount(f"Repayment {amount} exceeds debt {before.total} on loan {loan_id}")
            self.asset.transfer(caller, self.pool_id, amount)

            reported = self.loan_ledger.repay(loan_id, amount)
            after = self.loan_ledger.get_loan(loan_id)

            principal_paid = before.principal - after.principal
            interest_paid = amount - principal_paid
            fee = bps_of(interest_paid, self._params.reserve_factor_bps)
            self._total_assets = checked_add(self._total_assets, amount - fee)

            if fee > 0:
                self.asset.transfer(self.pool_id, self.fee_sink.account, fee)
                self.fee_sink.receive(fee)

            fully_repaid = after.status == LoanStatus.REPAID
            if fully_repaid:
                self.reputation.increase(after.borrower, REPAY_SCORE_BONUS)

            receipt = RepaymentReceipt(
                loan_id=loan_id,
                amount=amount,
                principal_paid=principal_paid,
                interest_paid=interest_paid,
                fee=fee,
                remaining=before.total - amount,
                fully_repaid=fully_repaid,
            )
            self._emit(
                EVENT_LOAN_REPAID, caller,
                loan_id=loan_id, amount=amount,
                principal_paid=principal_paid, interest_paid=interest_paid, fee=fee,
                fully_repaid=fully_repaid,
                ledger_principal_paid=reported.principal_paid,
                ledger_interest_paid=reported.interest_paid,
            )
        return receipt

    def mark_default(self, caller: str, loan_id: int) -> None:
        """
        Declare an overdue loan defaulted and penalize the borrower.

        total_assets is left unchanged.

        Raises:
            Unauthorized: If caller lacks MARK_DEFAULT.
            InvalidTransition: If the loan is not DRAWN or not yet past due.
        """
        with self._operation("mark_default"):
            self._require_capability(caller, Capability.MARK_DEFAULT)
            self.loan_ledger.mark_default(loan_id)
            loan = self.loan_ledger.get_loan(loan_id)
            self.reputation.decrease(loan.borrower, DEFAULT_SCORE_PENALTY)
            self._emit(
                EVENT_LOAN_DEFAULTED, caller,
                loan_id=loan_id, borrower=loan.borrower, principal=loan.principal,
            )

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def set_params(self, caller: str, new_params: Any) -> None:
        """
        Replace the pool parameters wholesale.

        In-flight loans keep the rate and tenor they were created with.

        Raises:
            Unauthorized: If caller lacks SET_PARAMS.
            InvalidParameters: If new_params violate their bounds.
        """
        with self._operation("set_params", check_pause=False):
            self._require_capability(caller, Capability.SET_PARAMS)
            self._params = coerce_params(new_params)
            self._emit(EVENT_PARAMS_UPDATED, caller, **self._params.to_dict())

    def pause(self, caller: str) -> None:
        with self._operation("pause", check_pause=False):
            self._require_capability(caller, Capability.PAUSE)
            if self._paused:
                raise InvalidTransition("Pool is already paused")
            self._paused = True
            self._emit(EVENT_PAUSED, caller)

    def unpause(self, caller: str) -> None:
        with self._operation("unpause", check_pause=False):
            self._require_capability(caller, Capability.PAUSE)
            if not self._paused:
                raise InvalidTransition("Pool is not paused")
            self._paused = False
            self._emit(EVENT_UNPAUSED, caller)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _operation(self, name: str, check_pause: bool = True) -> Iterator[None]:
        """
        Run one pool operation atomically.

        Checks the busy flag, then the pause flag, before anything else.
        On any exception all owned state is restored and the exception
        propagates unchanged.
        """
        if self._entered:
            raise ReentrantCall(f"{name} called while another pool operation is in flight")
        if check_pause and self._paused:
            raise PoolPaused(f"{name} rejected: pool {self.pool_id} is paused")
        self._entered = True
        snapshot = self._snapshot()
        try:
            yield
        except Exception as exc:
            self._restore(snapshot)
            if self.verbose:
                print(f"✗ REJECTED {name}: {type(exc).__name__}: {exc}")
            raise
        finally:
            self._entered = False

    def _snapshot(self) -> tuple:
        return (
            self._total_assets,
            self._params,
            self._paused,
            len(self.events),
            self._next_sequence,
            self.loan_ledger.snapshot(),
            self.shares.snapshot(),
            self.asset.snapshot(),
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self._total_assets,
            self._params,
            self._paused,
            event_count,
            self._next_sequence,
            loans,
            shares,
            assets,
        ) = snapshot
        del self.events[event_count:]
        self.loan_ledger.restore(loans)
        self.shares.restore(shares)
        self.asset.restore(assets)

    def _require_capability(self, caller: str, capability: Capability) -> None:
        if not self.authorizer.has_capability(caller, capability):
            raise Unauthorized(f"{caller} lacks capability {capability.value}")

    def _emit(self, kind: str, actor: str, **data: Any) -> None:
        event = PoolEvent(
            sequence_number=self._next_sequence,
            timestamp=self.clock.current_time,
            kind=kind,
            actor=actor,
            data=data,
        )
        self._next_sequence += 1
        self.events.append(event)
        if self.verbose:
            print(f"✓ {event!r}")

    def __repr__(self) -> str:
        return (
            f"ShareVault({self.pool_id} {self.symbol}: assets={self._total_assets}, "
            f"shares={self.total_shares}, loans={self.loan_ledger.loan_count})"
        )
