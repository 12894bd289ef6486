"""FastAPI application entry point for the tmap engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import global_exception_handler
from src.api.middleware.logging import StructuredLoggingMiddleware
from src.api.routes import dishes, health, referrals, restaurants, users
from src.config import settings
from src.db.database import close_connections, init_db
from src.shared.errors import TmapError
from src.shared.logging import setup_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(settings.log_level, json_logs=not settings.debug)
    health.mark_started()
    logger.info(
        "tmap_starting",
        version=settings.app_version,
        debug=settings.debug,
        chain_configured=bool(settings.dishes_contract_address),
    )

    await init_db()
    try:
        yield
    finally:
        await close_connections()
        logger.info("tmap_shutting_down")


app = FastAPI(
    title="tmap engine",
    description="Referral, portfolio and reputation engine for tokenized restaurant dishes",
    version=settings.app_version,
    lifespan=lifespan,
)

# Wallet frontends call the API cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or (["*"] if settings.debug else []),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(StructuredLoggingMiddleware)

# TmapError keeps its own status; anything else becomes a generic 500
for error_type in (TmapError, Exception):
    app.add_exception_handler(error_type, global_exception_handler)

for module in (health, users, dishes, restaurants, referrals):
    app.include_router(module.router)
