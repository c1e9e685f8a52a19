"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from api/
    - Adapters raise typed errors (core/errors.py); they never shape HTTP responses
    - metrics.py is the one adapter that swallows its own failures (logged only)

Design Decisions:
    - One adapter per external concern: backend HTTP, filesystem, metrics, session tokens
"""
