"""Core Layer — pure store logic, no IO, no logging, no global state.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - All functions are deterministic given the same snapshot

Design Decisions:
    - Functional core separated from the logging shell in services/
"""
