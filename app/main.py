"""Main application module.

This module initializes the FastAPI application, includes routes,
and configures middleware, exception handlers and the startup and
shutdown sequence.
"""

import os
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.core.redis import redis_manager
from app.core.url_logger import setup_url_logging, teardown_url_logging
from app.db import engine, initialize_database_connection
from app.models import ClickEvent, ShortLink  # noqa: F401  registers the tables
from app.services.tracker import click_tracker

# Ensure logs directory exists
os.makedirs(settings.LOG_DIR, exist_ok=True)

# Setup logging
logger = setup_logging()


async def create_tables() -> None:
    """Create any missing tables; for local runs without migrations."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT.value}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    setup_url_logging()
    logger.info("URL access logging initialized")

    if await initialize_database_connection():
        if settings.DB_CREATE_TABLES:
            await create_tables()
            logger.info("Database tables created")
    else:
        logger.critical("Database unavailable, requests needing it will fail until it recovers")

    if redis_manager.is_enabled and not await redis_manager.ping():
        logger.warning("Redis is unreachable, serving without cache")

    click_tracker.start()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")
    await click_tracker.stop()
    await redis_manager.close()
    await engine.dispose()
    teardown_url_logging()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# Add exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed information."""
    logger.info(f"Request validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to catch and log all unhandled exceptions."""
    error_id = f"error-{uuid.uuid4().hex[:12]}"

    logger.opt(exception=exc).bind(
        error_id=error_id,
        url=str(request.url),
        method=request.method,
        client_host=request.client.host if request.client else None,
    ).error(f"Unhandled exception in {request.method} {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error occurred",
            "error_id": error_id,
            "message": str(exc) if settings.DEBUG else "Internal server error"
        }
    )
