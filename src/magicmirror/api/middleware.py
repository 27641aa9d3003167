"""Request dependencies: app-state accessors and API key authentication."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from magicmirror.config import Settings
    from magicmirror.engine.pool import MatchingPool
    from magicmirror.engine.recognizer import Recognizer
    from magicmirror.store import ProfileRepository

_bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_from_request(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_store(request: Request) -> ProfileRepository:
    store: ProfileRepository = request.app.state.store
    return store


def get_recognizer(request: Request) -> Recognizer:
    recognizer: Recognizer = request.app.state.recognizer
    return recognizer


def get_matching_pool(request: Request) -> MatchingPool:
    pool: MatchingPool = request.app.state.matching_pool
    return pool


async def verify_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Require 'Authorization: Bearer <key>' when MAGICMIRROR_API_KEY is set.

    Profiles carry biometric descriptors, so listing and enrolling are gated
    by the same key as recognition. With no key configured, all requests pass.
    """
    api_key = get_settings_from_request(request).api_key
    if api_key is None:
        return

    presented = credentials.credentials if credentials is not None else ""
    if not secrets.compare_digest(presented.encode(), api_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
