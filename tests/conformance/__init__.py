"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the staking ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. solvency.py - Counters agree with positions and custody
2. atomicity.py - All-or-nothing operations, no re-entry
3. reward_properties.py - Reward arithmetic (rounding, monotonicity, penalty)
4. term_gating.py - Maturity boundaries and single-position uniqueness

These tests use hypothesis for property-based testing.
"""
