"""sitelog - daily construction-site work logs with manager approval."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from sitelog.core.config import settings
from sitelog.core.db_client import close_connection, init_db
from sitelog.core.logging import configure_logfire, instrument_fastapi
from sitelog.interface.router import register_exception_handlers, router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})

    yield
    # Shutdown
    await close_connection()
    logger.info("Database connections closed")


app = FastAPI(
    title="sitelog",
    description="Daily construction-site work logs with manager approval",
    version=settings.service_version,
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(router)
register_exception_handlers(app)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
