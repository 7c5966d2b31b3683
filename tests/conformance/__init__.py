"""
Conformance Test Suite

Properties every executor run must satisfy, whatever the messages are.

The tests are organized by property:
1. ordering.py - Messages execute in (logical time, insertion) order
2. index_consistency.py - Transaction lookups and history agree
3. snapshots.py - Save / load restores exactly the saved state
4. determinism.py - Identical inputs produce identical state

These tests use hypothesis for property-based testing.
"""
