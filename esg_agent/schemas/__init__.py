"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Core value objects stay dataclasses; schemas mirror their to_dict() output

Design Decisions:
    - Pydantic only at the edge (ADR: DDD boundary)
"""
