"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of a micro-lending pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - No value created or destroyed; solvency; exchange rate
2. atomicity.py - Every pool operation is all-or-nothing
3. state_machine.py - Loans move only along legal transitions
4. interest.py - Whole-day, floor-rounded, monotone interest
5. reentrancy.py - Collaborator callbacks cannot re-enter a pool

These tests use hypothesis for property-based testing.
"""
