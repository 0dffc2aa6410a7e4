"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the option protocol.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_conservation.py - Settlement only moves value between holder and pool
2. test_atomicity.py - A rejected transfer batch leaves balances and record untouched
3. test_temporal.py - Exactly one terminal transition is eligible at any height
4. test_idempotency.py - Terminal transitions happen once; replays are no-ops
5. test_determinism.py - Identical inputs give identical transfers and intents

These tests use hypothesis for property-based testing.
"""
