"""cortex - task scheduling, dependency and progress-rollup engine."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from cortex.core.db_client import close_connection, init_db
from cortex.core.live_query import snapshot_hub
from cortex.core.logging import configure_logfire, instrument_fastapi
from cortex.core.module_registry import get_modules, register_default_modules
from cortex.interface.api_router import register_error_handlers
from cortex.interface.api_router import router as api_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()

    register_default_modules()
    logger.info("Modules registered: %s", sorted(get_modules()))

    await init_db()
    logger.info("Database initialized")

    yield
    # Shutdown
    snapshot_hub.clear()
    await close_connection()


app = FastAPI(
    title="cortex",
    description="Task scheduling, dependency and progress-rollup engine",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)
register_error_handlers(app)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
