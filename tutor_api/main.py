"""FastAPI application for the tutor classification service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from tutor_api.config import get_settings
from tutor_api.db.supabase_client import get_supabase_client
from tutor_api.middleware.logging import RequestLoggingMiddleware
from tutor_api.middleware.rate_limit import (
    get_limiter,
    rate_limit_exceeded_handler,
)
from tutor_api.routers import classification
from tutor_api.services.problem_classifier import CLASSIFIER_VERSION

logger = logging.getLogger(__name__)

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # Overridden by the build process


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    try:
        # Raises ValidationError if required env vars are missing
        settings = get_settings()
    except Exception as e:
        logger.error("Startup validation failed: %s", e)
        raise

    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting Tutor Classification API v%s", VERSION)
    logger.info("Classifier version: %s", CLASSIFIER_VERSION)
    logger.info("Max batch size: %d", settings.max_batch_size)

    yield

    logger.info("Shutting down Tutor Classification API")


app = FastAPI(
    title="Tutor Classification API",
    description="Classifies math problems by subject, difficulty, grade level and complexity",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Rate limiter must live on app state for slowapi
limiter = get_limiter()
app.state.limiter = limiter

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Added first so it wraps all other middleware
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict to the frontend origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint.

    The classifier has no external dependencies; only the problem store
    (used by feedback and stats) is checked.

    Status Codes:
        200: All services healthy
        503: Problem store unavailable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    services: Dict[str, str] = {"classifier": "healthy"}
    overall_healthy = True

    try:
        supabase_client = get_supabase_client()
        response = supabase_client.table("problems").select("id").limit(1).execute()
        if response is not None:
            services["supabase"] = "healthy"
        else:
            services["supabase"] = "unhealthy: no response"
            overall_healthy = False
    except Exception as e:
        services["supabase"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "services": services,
    }

    if not overall_healthy:
        return JSONResponse(content=response_data, status_code=503)

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Version of the API and of the classification rules."""
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
        "classifier_version": CLASSIFIER_VERSION,
    }


app.include_router(classification.router)
