"""Pydantic Schemas — request/response shapes for API endpoints.

Invariants:
    - Schemas check shape only; business validation belongs to the backend
    - extra="allow" everywhere: backend fields pass through untouched
"""
