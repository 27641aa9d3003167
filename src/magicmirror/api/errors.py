"""Map engine and catalog errors onto HTTP responses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import status
from fastapi.responses import JSONResponse

from magicmirror.engine.errors import EngineError
from magicmirror.store import DuplicateEmail, ProfileNotFound

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)


async def _engine_error(request: Request, exc: Exception) -> JSONResponse:
    kind = exc.kind if isinstance(exc, EngineError) else type(exc).__name__
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "error": kind},
    )


async def _profile_not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "error": "ProfileNotFound"},
    )


async def _duplicate_email(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "error": "DuplicateEmail"},
    )


async def _pool_timeout(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Matching service is busy, try again", "error": "Busy"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EngineError, _engine_error)
    app.add_exception_handler(ProfileNotFound, _profile_not_found)
    app.add_exception_handler(DuplicateEmail, _duplicate_email)
    app.add_exception_handler(TimeoutError, _pool_timeout)
