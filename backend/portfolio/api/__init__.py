"""API Layer — FastAPI routes, dependencies, middleware and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return JSON; every response carries x-request-id
    - Errors are logged and counted exactly once, at the handler/middleware boundary

Design Decisions:
    - Thin routes: outbound IO lives in infrastructure/, rules in core/
"""
