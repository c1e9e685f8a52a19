"""Core Layer — pure logic, no IO, no async, no HTTP.

Invariants:
    - No module in core/ imports from api/, infrastructure/, or schemas/
    - All functions are pure and deterministic (uuid generation aside)

Design Decisions:
    - Functional core separated from imperative shell: routes and adapters call in, never the reverse
"""
