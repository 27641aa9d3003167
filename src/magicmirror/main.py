"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from magicmirror.api.errors import register_exception_handlers
from magicmirror.api.routes import router
from magicmirror.config import Settings, get_settings
from magicmirror.engine.pool import MatchingPool
from magicmirror.engine.recognizer import Recognizer
from magicmirror.store import InMemoryProfileStore

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, settings: Settings) -> None:
    """Attach settings, engine, catalog and matching pool to the app."""
    app.state.settings = settings
    recognizer = Recognizer(
        dim=settings.embedding_dim,
        min_samples=settings.min_samples,
        default_threshold=settings.default_threshold,
    )
    app.state.recognizer = recognizer
    app.state.store = InMemoryProfileStore(max_sessions=settings.session_retention)
    app.state.matching_pool = MatchingPool(settings, recognizer)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting Magic Mirror (embedding_dim=%s, min_samples=%s, threshold=%.2f, max_concurrent=%s)",
        settings.embedding_dim,
        settings.min_samples,
        settings.default_threshold,
        settings.max_concurrent,
    )
    init_state(app, settings)

    logger.info("Magic Mirror ready")
    yield

    logger.info("Shutting down Magic Mirror")
    app.state.matching_pool.shutdown()
    logger.info("Magic Mirror shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Magic Mirror",
        description="Face enrollment and recognition API over precomputed face descriptors",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("magicmirror.main:app", host=settings.host, port=settings.port)
