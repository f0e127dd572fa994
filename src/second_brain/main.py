"""
Second Brain Backend Application

FastAPI application entrypoint with async lifespan management.
Handles the startup database check, error mapping and graceful shutdown.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from second_brain import __version__
from second_brain.api.v1.notes import router as notes_router
from second_brain.api.v1.search import router as search_router
from second_brain.api.v1.tags import router as tags_router
from second_brain.core.config import AIClientConfig, settings
from second_brain.core.database import dispose_engine
from second_brain.core.exceptions import AuthError, PersistenceError, SecondBrainError
from second_brain.core.logging import setup_logging

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for PostgreSQL to become available.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    engine = create_async_engine(settings.DATABASE_URL)
    try:
        for i in range(retries):
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Postgres connection established")
                return True
            except Exception as e:
                logger.warning("Waiting for Postgres (%d/%d)... Error: %s", i + 1, retries, e)
                await asyncio.sleep(delay)
        return False
    finally:
        await engine.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (blocks startup on failure)
        - Logs whether the AI clients run in mock mode

    Shutdown:
        - Disposes the shared engine
    """
    logger.info("Starting Second Brain...")
    logger.info("Log Level: %s", settings.LOG_LEVEL)

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    if AIClientConfig.from_settings().is_mock:
        logger.warning("AI_API_KEY not set - enrichment and embeddings run in mock mode")

    yield  # Application runs here

    await dispose_engine()
    logger.info("Shutting down Second Brain...")


app = FastAPI(title=settings.PROJECT_NAME, version=__version__, lifespan=lifespan)

app.include_router(notes_router, prefix=f"{API_PREFIX}/notes", tags=["Notes"])
app.include_router(search_router, prefix=f"{API_PREFIX}/search", tags=["Search"])
app.include_router(tags_router, prefix=f"{API_PREFIX}/tags", tags=["Tags"])


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@app.exception_handler(SecondBrainError)
async def handle_app_error(request: Request, exc: SecondBrainError) -> JSONResponse:
    """Convert domain failures to ``{"error": message}`` with their status."""
    content: dict[str, object] = {"error": exc.public_message}
    if isinstance(exc, AuthError):
        content["notes"] = []
    if isinstance(exc, PersistenceError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    elif exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client errors like any other ValidationError."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"Invalid {field}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
@app.get(f"{API_PREFIX}/health")
async def health_check():
    """Static health status for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "second-brain",
        "version": __version__,
        "ai_mode": "mock" if AIClientConfig.from_settings().is_mock else "live",
    }
