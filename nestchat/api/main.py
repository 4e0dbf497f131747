"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration
4. Exception handlers
5. Startup/shutdown events

Run with: uvicorn nestchat.api.main:app --reload
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from nestchat import __version__
from nestchat.api.routes import chat_router, health_router
from nestchat.core.config import get_settings
from nestchat.core.exceptions import AssistantException, RateLimitExceeded
from nestchat.core.logging_config import get_logger, setup_logging
from nestchat.core.rate_limiter import reset_rate_limiters
from nestchat.database.connection import get_database
from nestchat.database.init_db import init_tables


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: make sure the storage tables exist
    - Shutdown: stop limiter sweepers, close database connections
    """
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"LLM provider: {settings.llm_provider} ({settings.llm_model})")

    try:
        init_tables()
    except SQLAlchemyError as e:
        # Turns still work without storage; persistence failures become warnings
        logger.warning(f"Could not initialize database tables: {e}")

    yield  # Application runs here

    logger.info(f"Shutting down {settings.app_name}")
    reset_rate_limiters()
    get_database().close()


app = FastAPI(
    title="NestChat API",
    description="""
    A conversational pregnancy-support assistant.

    ## Features

    - **Intent-aware replies**: small talk is answered instantly, questions go to the LLM
    - **Memory**: recent messages, durable facts and symptom history shape every answer
    - **Calendar suggestions**: reminders and urgent care prompts for severe symptoms
    - **Streaming**: answers arrive piece by piece over WebSocket
    - **Resilience**: circuit breaker and localized fallback replies
    - **Rate Limiting**: per IP, per user and per connection
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration
# ============================================================

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.warning("CORS configured for development (all origins allowed)")


# ============================================================
# Exception Handlers
# ============================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)}
    )


@app.exception_handler(AssistantException)
async def assistant_exception_handler(request: Request, exc: AssistantException):
    """Handle all custom assistant exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": str(exc) if settings.is_development() else None,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
app.include_router(chat_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "NestChat API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nestchat.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development()
    )
