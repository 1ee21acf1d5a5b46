"""
Interest Conformance Tests

INVARIANT: Interest is simple, accrues in whole days and rounds down.

    interest(p, r, d) = floor(p * r * d / (10000 * 365))

    d < 1 day       ⟹ interest = 0
    d1 ≤ d2         ⟹ interest(d1) ≤ interest(d2)
    p1 ≤ p2         ⟹ interest(p1) ≤ interest(p2)
"""

from datetime import datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from microcredit import calculate_interest, simple_interest
from tests.fakes import build_system, days_later, open_loan


T0 = datetime(2025, 1, 1)
DENOMINATOR = 10_000 * 365

principals = st.integers(min_value=0, max_value=10**30)
rates = st.integers(min_value=0, max_value=10_000)
day_counts = st.integers(min_value=0, max_value=3650)


class TestInterestProperties:

    @given(principals, rates, day_counts)
    @settings(max_examples=200)
    def test_floor_of_exact_value(self, principal, rate, days):
        interest = simple_interest(principal, rate, days)
        exact = principal * rate * days
        assert interest * DENOMINATOR <= exact < (interest + 1) * DENOMINATOR

    @given(principals, rates, day_counts, day_counts)
    @settings(max_examples=200)
    def test_monotone_in_time(self, principal, rate, d1, d2):
        low, high = sorted((d1, d2))
        assert simple_interest(principal, rate, low) <= simple_interest(principal, rate, high)

    @given(principals, principals, rates, day_counts)
    @settings(max_examples=200)
    def test_monotone_in_principal(self, p1, p2, rate, days):
        low, high = sorted((p1, p2))
        assert simple_interest(low, rate, days) <= simple_interest(high, rate, days)

    @given(principals, rates, st.integers(min_value=0, max_value=86_399))
    @settings(max_examples=200)
    def test_nothing_within_first_day(self, principal, rate, seconds):
        now = T0 + timedelta(seconds=seconds)
        assert calculate_interest(principal, rate, T0, now) == 0

    @given(
        amount=st.integers(min_value=1, max_value=5_000),
        days=st.integers(min_value=0, max_value=90),
        hours=st.integers(min_value=0, max_value=23),
    )
    @settings(max_examples=100, deadline=None)
    def test_pool_debt_matches_formula(self, amount, days, hours):
        system = build_system()
        pool = system.pool
        pool.deposit("alice", 10_000)
        loan_id = open_loan(pool, "bob", amount)
        days_later(system.clock, days, seconds=hours * 3600)
        debt = pool.current_debt(loan_id)
        assert debt.interest == amount * 500 * days // DENOMINATOR
        assert debt.total == amount + debt.interest
        assert debt.late_fees == 0
