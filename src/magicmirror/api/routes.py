"""API route definitions."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from magicmirror.api.middleware import (
    get_matching_pool,
    get_recognizer,
    get_settings_from_request,
    get_store,
    verify_api_key,
)
from magicmirror.api.schemas import (
    CreateUserRequest,
    EnrollmentSampleIn,
    EnrollRequest,
    EnrollResponse,
    ErrorResponse,
    HealthResponse,
    MatchOut,
    PhotoOut,
    ProfileDetail,
    ProfilesResponse,
    ProfileSummary,
    RecognizeRequest,
    RecentSessionOut,
    RecentSessionsResponse,
    RecognizeResponse,
    ReenrollRequest,
    SessionOut,
    SessionsResponse,
    StatsResponse,
    UpdateUserRequest,
)
from magicmirror.config import Settings  # noqa: TC001
from magicmirror.engine.enrollment import EnrollmentSample
from magicmirror.engine.pool import MatchingPool  # noqa: TC001
from magicmirror.engine.recognizer import Recognizer  # noqa: TC001
from magicmirror.engine.validation import validate_threshold
from magicmirror.store import DuplicateEmail, PhotoInfo, Profile, ProfileNotFound, ProfileRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

SettingsDep = Annotated[Settings, Depends(get_settings_from_request)]
StoreDep = Annotated[ProfileRepository, Depends(get_store)]
RecognizerDep = Annotated[Recognizer, Depends(get_recognizer)]
PoolDep = Annotated[MatchingPool, Depends(get_matching_pool)]

_CLIENT_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


def _to_samples(samples: list[EnrollmentSampleIn]) -> list[EnrollmentSample]:
    return [
        EnrollmentSample(
            embedding=s.embedding,
            face_detected=s.face_detected,
            label=s.label,
            captured_at=s.captured_at,
        )
        for s in samples
    ]


def _photos(samples: list[EnrollmentSample]) -> list[PhotoInfo]:
    return [PhotoInfo(label=s.label, captured_at=s.captured_at) for s in samples if s.is_valid]


def _summary(profile: Profile) -> dict[str, object]:
    return {
        "id": profile.id,
        "name": profile.name,
        "email": profile.email,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
        "photo_count": len(profile.photos),
    }


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


@router.post(
    "/enroll",
    response_model=EnrollResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_CLIENT_ERRORS, status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
    summary="Register a new profile from a capture session",
)
async def enroll(body: EnrollRequest, store: StoreDep, pool: PoolDep) -> EnrollResponse:
    """Average the session's face descriptors and store the new profile."""
    if body.email and store.get_profile_by_email(body.email) is not None:
        # create_profile re-checks under its lock.
        raise DuplicateEmail(body.email.strip())

    samples = _to_samples(body.samples)
    result = await pool.enroll(samples)
    profile = store.create_profile(
        name=body.name,
        embedding=result.to_list(),
        email=body.email,
        photos=_photos(samples),
    )
    return EnrollResponse(**_summary(profile), sample_count=result.sample_count)


@router.put(
    "/users/{profile_id}/enrollment",
    response_model=EnrollResponse,
    responses={**_CLIENT_ERRORS, status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Re-enroll an existing profile",
)
async def reenroll(
    profile_id: str,
    body: ReenrollRequest,
    store: StoreDep,
    pool: PoolDep,
) -> EnrollResponse:
    """Replace a profile's canonical descriptor with a fresh capture session."""
    store.get_profile(profile_id)
    samples = _to_samples(body.samples)
    result = await pool.enroll(samples)
    profile = store.update_profile(profile_id, embedding=result.to_list(), photos=_photos(samples))
    return EnrollResponse(**_summary(profile), sample_count=result.sample_count)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@router.post(
    "/users",
    response_model=ProfileSummary,
    status_code=status.HTTP_201_CREATED,
    responses={**_CLIENT_ERRORS, status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
    summary="Create a profile from a precomputed descriptor",
)
async def create_user(body: CreateUserRequest, store: StoreDep, recognizer: RecognizerDep) -> ProfileSummary:
    embedding = recognizer.check_embedding(body.embedding)
    profile = store.create_profile(name=body.name, embedding=embedding.tolist(), email=body.email)
    return ProfileSummary(**_summary(profile))


@router.get("/users", response_model=ProfilesResponse, summary="List profiles")
async def list_users(store: StoreDep) -> ProfilesResponse:
    profiles = [ProfileSummary(**_summary(p)) for p in store.list_profiles()]
    return ProfilesResponse(profiles=profiles, count=len(profiles))


@router.get(
    "/users/{profile_id}",
    response_model=ProfileDetail,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Get one profile",
)
async def get_user(profile_id: str, store: StoreDep) -> ProfileDetail:
    profile = store.get_profile(profile_id)
    return ProfileDetail(
        **_summary(profile),
        photos=[PhotoOut(label=p.label, captured_at=p.captured_at) for p in profile.photos],
        embedding_dim=len(profile.embedding),
    )


@router.delete(
    "/users/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Delete a profile and its sessions",
)
async def delete_user(profile_id: str, store: StoreDep) -> Response:
    if not store.delete_profile(profile_id):
        raise ProfileNotFound(profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/users/{profile_id}/sessions",
    response_model=SessionsResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Recent recognition sessions of a profile",
)
async def list_user_sessions(
    profile_id: str,
    store: StoreDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> SessionsResponse:
    sessions = store.list_sessions(profile_id, limit=limit)
    return SessionsResponse(
        sessions=[
            SessionOut(id=s.id, profile_id=s.profile_id, confidence=s.confidence, timestamp=s.timestamp)
            for s in sessions
        ]
    )


@router.patch(
    "/users/{profile_id}",
    response_model=ProfileSummary,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
    summary="Update a profile's name or email",
)
async def update_user(profile_id: str, body: UpdateUserRequest, store: StoreDep) -> ProfileSummary:
    profile = store.update_profile(profile_id, name=body.name, email=body.email)
    return ProfileSummary(**_summary(profile))


@router.get("/sessions", response_model=RecentSessionsResponse, summary="Recent recognition sessions")
async def list_sessions(
    store: StoreDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> RecentSessionsResponse:
    """Latest sessions across all profiles, newest first."""
    profiles = {p.id: p for p in store.list_profiles()}
    sessions = [
        RecentSessionOut(
            id=s.id,
            profile_id=s.profile_id,
            confidence=s.confidence,
            timestamp=s.timestamp,
            name=profiles[s.profile_id].name,
            email=profiles[s.profile_id].email,
        )
        for s in store.list_sessions(limit=limit)
        if s.profile_id in profiles
    ]
    return RecentSessionsResponse(sessions=sessions, count=len(sessions))


# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------


def _no_match(threshold: float) -> RecognizeResponse:
    return RecognizeResponse(
        recognized=False,
        match=None,
        threshold=threshold,
        message="No matching user found",
    )


@router.post(
    "/recognize",
    response_model=RecognizeResponse,
    responses=_CLIENT_ERRORS,
    summary="Recognize a face descriptor",
)
async def recognize(
    body: RecognizeRequest,
    store: StoreDep,
    recognizer: RecognizerDep,
    pool: PoolDep,
) -> RecognizeResponse:
    """Match a descriptor against every enrolled profile.

    No match is a normal response with ``match: null``.
    """
    threshold = validate_threshold(body.threshold, default=recognizer.default_threshold)
    snapshot = store.catalog()
    result = await pool.recognize(body.embedding, snapshot, threshold)

    if result is None:
        return _no_match(threshold)

    try:
        session = store.record_session(result.profile_id, result.confidence)
        profile = store.get_profile(result.profile_id)
    except ProfileNotFound:
        # Deleted while the scan was running.
        logger.warning("Matched profile %s no longer exists", result.profile_id)
        return _no_match(threshold)
    return RecognizeResponse(
        recognized=True,
        match=MatchOut(
            profile_id=profile.id,
            name=profile.name,
            email=profile.email,
            distance=result.distance,
            confidence=result.confidence,
            timestamp=session.timestamp,
        ),
        threshold=threshold,
        message=f"Welcome back, {profile.name}!",
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse, summary="Catalog statistics")
async def stats(settings: SettingsDep, store: StoreDep) -> StatsResponse:
    counts = store.stats(timedelta(hours=settings.recent_window_hours))
    return StatsResponse(
        user_count=counts.user_count,
        session_count=counts.session_count,
        recent_sessions=counts.recent_sessions,
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(settings: SettingsDep, store: StoreDep, pool: PoolDep) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="ok",
        embedding_dim=settings.embedding_dim,
        profiles=len(store.catalog()),
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
        completed_requests=pool.completed_count,
        rejected_requests=pool.rejected_count,
    )
