"""Service test fixtures — orchestrators wired with fake collaborators.

Invariants:
    - Every orchestrator uses the FIXED_NOW clock so timeliness is deterministic
    - Orchestrators started by a fixture are always stopped at teardown
"""

import pytest

from tests.fakes import make_orchestrator


@pytest.fixture
def orchestrator():
    """Fallback-only orchestrator, not started: tests drive execute() directly."""
    return make_orchestrator()


@pytest.fixture
async def running_orchestrator():
    orchestrator = make_orchestrator(workers=8)
    await orchestrator.start()
    yield orchestrator
    await orchestrator.stop()
