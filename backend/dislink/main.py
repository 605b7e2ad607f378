"""Dislink QR API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map DislinkError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - The mailer singleton is closed on shutdown (it owns an HTTP pool)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dislink.api.dependencies import close_mailer
from dislink.api.error_handlers import register_error_handlers
from dislink.api.routes import auth_events, health, profiles, public_profiles
from dislink.config import get_settings
from dislink.infrastructure import database
from dislink.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Dislink QR API started")
    yield
    await close_mailer()
    if database.db_manager is not None:
        await database.db_manager.dispose()
    logger.info("Dislink QR API shutting down")


app = FastAPI(title="Dislink QR API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(public_profiles.router)
app.include_router(profiles.router)
app.include_router(auth_events.router)

register_error_handlers(app)
