"""ESG Agent API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map EsgAgentError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Orchestrator built and its worker pool started in lifespan; stopped on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Orchestrator on app.state: one instance per process, swappable in tests
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from esg_agent import __version__
from esg_agent.api.error_handlers import register_error_handlers
from esg_agent.api.routes import agent_tasks, health
from esg_agent.config import get_settings
from esg_agent.infrastructure.observability import setup_logging
from esg_agent.services.task_orchestrator import build_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    orchestrator = build_orchestrator(settings)
    app.state.orchestrator = orchestrator
    await orchestrator.start()
    logger.info("ESG Agent API started")
    yield
    logger.info("ESG Agent API shutting down")
    await orchestrator.stop()


app = FastAPI(title="ESG Agent API", version=__version__, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(agent_tasks.router)

register_error_handlers(app)
