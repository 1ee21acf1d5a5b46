"""
Atomicity Conformance Tests

INVARIANT: Pool operations are all-or-nothing.

    ∀ operation op:
        op succeeds ⟹ every effect of op is applied
        op fails    ⟹ pool, loan ledger, share token and funding asset
                       are exactly as they were before op

Partial application is impossible by construction: every operation runs
against a snapshot that is restored on any exception.
"""

import pytest
from hypothesis import given, settings, note
from hypothesis import strategies as st

from microcredit import LendingError, LoanStatus, TransferFailed
from tests.fakes import (
    FailingFeeSink, ReentrantToken, build_system, days_later, open_loan,
)


def fingerprint(system):
    """Everything an operation may touch, in comparable form."""
    pool, usdc = system.pool, system.usdc
    return (
        pool.total_assets,
        pool.params,
        pool.paused,
        len(pool.events),
        pool.shares.holders(),
        pool.shares.total_supply(),
        len(pool.shares.transfer_log),
        usdc.holders(),
        usdc.total_supply(),
        len(usdc.transfer_log),
        tuple(pool.loan_ledger.loans()),
    )


def prepared_system(**kwargs):
    """Pool with deposits, one drawn loan, one approved loan and one request."""
    system = build_system(**kwargs)
    pool = system.pool
    pool.deposit("alice", 10_000)
    pool.deposit("carol", 5_000)
    open_loan(pool, "bob", 3_000)
    approved = pool.request_loan("dave", 2_000)
    pool.approve_loan("manager", approved)
    pool.request_loan("carol", 1_000)
    days_later(system.clock, 30)
    return system


# =============================================================================
# STRATEGIES
# =============================================================================

CALLERS = ["alice", "bob", "carol", "dave", "manager", "keeper", "mallory"]


@st.composite
def pool_call(draw):
    kind = draw(st.sampled_from([
        "deposit", "withdraw", "request_loan", "approve_loan",
        "drawdown", "repay", "mark_default",
    ]))
    caller = draw(st.sampled_from(CALLERS))
    amount = draw(st.integers(min_value=0, max_value=2_000_000))
    loan_id = draw(st.integers(min_value=0, max_value=5))
    return kind, caller, amount, loan_id


def invoke(pool, call):
    kind, caller, amount, loan_id = call
    if kind in ("deposit", "withdraw", "request_loan"):
        return getattr(pool, kind)(caller, amount)
    if kind == "repay":
        return pool.repay(caller, loan_id, amount)
    return getattr(pool, kind)(caller, loan_id)


# =============================================================================
# PROPERTIES
# =============================================================================

class TestAtomicityProperties:

    @given(st.lists(pool_call(), min_size=1, max_size=20))
    @settings(max_examples=100, deadline=None)
    def test_failed_operations_change_nothing(self, calls):
        """
        PROPERTY: Whenever an operation raises, the observable state is
        identical to the state before the call.
        """
        system = prepared_system()
        for call in calls:
            note(f"{call}")
            before = fingerprint(system)
            try:
                invoke(system.pool, call)
            except LendingError:
                assert fingerprint(system) == before

    @given(st.lists(pool_call(), min_size=1, max_size=20))
    @settings(max_examples=50, deadline=None)
    def test_successful_operations_emit_one_event(self, calls):
        """PROPERTY: Each applied operation appends exactly one event."""
        system = prepared_system()
        pool = system.pool
        for call in calls:
            count = len(pool.events)
            try:
                invoke(pool, call)
            except LendingError:
                assert len(pool.events) == count
            else:
                assert len(pool.events) == count + 1
                assert pool.events[-1].sequence_number == count


class TestCollaboratorFailures:

    def test_fee_sink_failure_rolls_back_repayment(self):
        sink = FailingFeeSink()
        system = build_system(fee_sink=sink)
        pool = system.pool
        pool.deposit("alice", 10_000)
        loan_id = open_loan(pool, "bob", 5_000)
        days_later(system.clock, 365)
        before = fingerprint(system)

        with pytest.raises(TransferFailed):
            pool.repay("bob", loan_id, 5_250)

        assert sink.calls == 1
        assert fingerprint(system) == before
        assert pool.get_loan(loan_id).status == LoanStatus.DRAWN
        assert system.usdc.balance_of(sink.account) == 0
        assert system.registry.score("bob") == 0

    def test_fee_free_repayment_skips_sink(self):
        sink = FailingFeeSink()
        system = build_system(fee_sink=sink)
        pool = system.pool
        pool.deposit("alice", 10_000)
        loan_id = open_loan(pool, "bob", 5_000)
        receipt = pool.repay("bob", loan_id, 5_000)
        assert receipt.fee == 0
        assert sink.calls == 0

    def test_failed_payout_restores_burned_shares(self):
        system = build_system(token_class=ReentrantToken)
        usdc, pool = system.usdc, system.pool
        usdc.swallow = False
        pool.deposit("alice", 10_000)

        def reject():
            raise TransferFailed("receiver rejected payout")

        usdc.hook = reject
        before = fingerprint(system)
        with pytest.raises(TransferFailed):
            pool.withdraw("alice", 4_000)
        assert fingerprint(system) == before
        assert pool.share_balance("alice") == 10_000
        assert usdc.balance_of("pool-1") == 10_000

    def test_failed_drawdown_leaves_loan_approved(self):
        system = build_system(token_class=ReentrantToken)
        usdc, pool = system.usdc, system.pool
        usdc.swallow = False
        pool.deposit("alice", 10_000)
        loan_id = pool.request_loan("bob", 1_000)
        pool.approve_loan("manager", loan_id)

        def reject():
            raise TransferFailed("receiver rejected payout")

        usdc.hook = reject
        with pytest.raises(TransferFailed):
            pool.drawdown("bob", loan_id)
        loan = pool.get_loan(loan_id)
        assert loan.status == LoanStatus.APPROVED
        assert loan.drawn_at is None
        assert pool.total_assets == 10_000
