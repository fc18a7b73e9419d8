"""Core Layer — pure domain logic: validation, anomaly detection, scoring, compliance rules.

Invariants:
    - No module in core/ imports from services/, api/ or infrastructure/
    - No I/O, no async except Protocol declarations; functions are deterministic

Design Decisions:
    - Functional core separated from the async orchestration shell (ADR: impureim sandwich)
"""
