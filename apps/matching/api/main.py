"""
Stadium Matching API Server

FastAPI server that places groups of players into stadiums with free
capacity and tracks each match until it is cancelled.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from matching.api.routes import router, limiter as routes_limiter
from matching.database import db
from matching.services.connection_monitor import get_connection_monitor
from matching.services.errors import MatchingError

# Set up logging
# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting up Stadium Matching API...")

    # Initialize database (create tables if they don't exist)
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        # Don't raise - the connection monitor reports the outage and retries

    # Start database connection monitor
    try:
        monitor = get_connection_monitor()
        monitor.start()
        logger.info("✓ Database connection monitor started")
    except Exception as e:
        logger.error(f"Failed to start database connection monitor: {e}", exc_info=True)

    yield  # App is running

    # Shutdown
    logger.info("Shutting down Stadium Matching API...")

    try:
        await get_connection_monitor().stop()
        logger.info("✓ Database connection monitor stopped")
    except Exception as e:
        logger.error(f"Error stopping database connection monitor: {e}", exc_info=True)

    try:
        await db.engine.dispose()
        logger.info("✓ Database engine disposed")
    except Exception as e:
        logger.error(f"Error disposing database engine: {e}", exc_info=True)


app = FastAPI(
    title="Stadium Matching API",
    description="API for matching player groups to stadiums with free capacity",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _matching_error_handler(request: Request, exc: MatchingError) -> JSONResponse:
    """Render every reported failure as the structured result body."""
    if exc.status_code >= 500:
        logger.error(f"{exc.reason} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.reason} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.add_exception_handler(MatchingError, _matching_error_handler)

# Add CORS middleware (origins configured via ALLOWED_ORIGINS env var)
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
