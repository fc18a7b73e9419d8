"""Services Layer — task orchestration, collaborator adapters and branch fallbacks.

Invariants:
    - Services own all async coordination; core stays synchronous
    - Collaborators are injected (Protocols from core/collaborator_protocols.py)

Design Decisions:
    - One module per concern: registry, orchestrator, branches, adapters, report assembly
"""
