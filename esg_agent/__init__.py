"""ESG Agent Package — analysis task orchestrator and data-validation engine.

Invariants:
    - Package root defines metadata only (no import side-effects)

Design Decisions:
    - Explicit imports only, no star exports
"""

__version__ = "1.0.0"
