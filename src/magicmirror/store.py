"""Profile catalog: enrolled profiles and recognition sessions.

The engine never touches storage. This module holds what the service needs
around it: profiles with their canonical embedding, an audit trail of
recognition sessions, and consistent catalog snapshots for matching.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from magicmirror.engine.recognizer import CatalogEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for catalog errors."""


class ProfileNotFound(StoreError, LookupError):
    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(f"Profile not found: {profile_id}")


class DuplicateEmail(StoreError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"A profile with email {email} already exists")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhotoInfo:
    """Metadata of one accepted enrollment photo."""

    label: str | None = None
    captured_at: datetime | None = None


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    embedding: tuple[float, ...] = field(repr=False)
    email: str | None = None
    photos: tuple[PhotoInfo, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class RecognitionSession:
    id: str
    profile_id: str
    confidence: float
    timestamp: datetime


@dataclass(frozen=True)
class CatalogStats:
    user_count: int
    session_count: int
    recent_sessions: int


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProfileRepository(Protocol):
    """Protocol for profile persistence backends."""

    def create_profile(
        self,
        name: str,
        embedding: Iterable[float],
        email: str | None = None,
        photos: Sequence[PhotoInfo] = (),
    ) -> Profile: ...

    def get_profile(self, profile_id: str) -> Profile: ...

    def get_profile_by_email(self, email: str) -> Profile | None: ...

    def list_profiles(self) -> list[Profile]: ...

    def update_profile(
        self,
        profile_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        embedding: Iterable[float] | None = None,
        photos: Sequence[PhotoInfo] | None = None,
    ) -> Profile: ...

    def delete_profile(self, profile_id: str) -> bool: ...

    def catalog(self) -> list[CatalogEntry]: ...

    def record_session(self, profile_id: str, confidence: float) -> RecognitionSession: ...

    def list_sessions(self, profile_id: str | None = None, limit: int = 10) -> list[RecognitionSession]: ...

    def stats(self, window: timedelta) -> CatalogStats: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip()
    return email or None


class InMemoryProfileStore:
    """Thread-safe in-process profile store.

    Writes are serialized by a single lock; ``catalog()`` returns a copy so a
    recognition scan never sees a half-applied write. Only the newest
    ``max_sessions`` recognition sessions are kept.
    """

    def __init__(self, max_sessions: int = 10_000) -> None:
        self._lock = threading.Lock()
        self._profiles: dict[str, Profile] = {}
        self._sessions: deque[RecognitionSession] = deque(maxlen=max_sessions)

    # -- Profiles -----------------------------------------------------------

    def create_profile(
        self,
        name: str,
        embedding: Iterable[float],
        email: str | None = None,
        photos: Sequence[PhotoInfo] = (),
    ) -> Profile:
        email = _normalize_email(email)
        now = datetime.now(UTC)
        profile = Profile(
            id=uuid.uuid4().hex,
            name=name.strip(),
            embedding=tuple(float(x) for x in embedding),
            email=email,
            photos=tuple(photos),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if email is not None and self._find_email(email) is not None:
                raise DuplicateEmail(email)
            self._profiles[profile.id] = profile
        logger.info("Created profile %s (%s)", profile.id, profile.name)
        return profile

    def get_profile(self, profile_id: str) -> Profile:
        with self._lock:
            return self._get(profile_id)

    def get_profile_by_email(self, email: str) -> Profile | None:
        normalized = _normalize_email(email)
        if normalized is None:
            return None
        with self._lock:
            return self._find_email(normalized)

    def list_profiles(self) -> list[Profile]:
        """Return all profiles, newest first."""
        with self._lock:
            return list(reversed(self._profiles.values()))

    def update_profile(
        self,
        profile_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        embedding: Iterable[float] | None = None,
        photos: Sequence[PhotoInfo] | None = None,
    ) -> Profile:
        """Apply the given changes; a new embedding replaces the old one."""
        changes: dict[str, object] = {"updated_at": datetime.now(UTC)}
        if name is not None:
            changes["name"] = name.strip()
        if embedding is not None:
            changes["embedding"] = tuple(float(x) for x in embedding)
        if photos is not None:
            changes["photos"] = tuple(photos)
        normalized = _normalize_email(email)

        with self._lock:
            current = self._get(profile_id)
            if normalized is not None:
                owner = self._find_email(normalized)
                if owner is not None and owner.id != profile_id:
                    raise DuplicateEmail(normalized)
                changes["email"] = normalized
            updated = replace(current, **changes)  # type: ignore[arg-type]
            self._profiles[profile_id] = updated
        logger.info("Updated profile %s", profile_id)
        return updated

    def delete_profile(self, profile_id: str) -> bool:
        """Remove a profile and its sessions. Returns False if it did not exist."""
        with self._lock:
            if self._profiles.pop(profile_id, None) is None:
                return False
            self._sessions = deque(
                (s for s in self._sessions if s.profile_id != profile_id),
                maxlen=self._sessions.maxlen,
            )
        logger.info("Deleted profile %s", profile_id)
        return True

    def catalog(self) -> list[CatalogEntry]:
        """Snapshot of every profile's canonical embedding, oldest first."""
        with self._lock:
            return [CatalogEntry(p.id, p.name, p.embedding) for p in self._profiles.values()]

    # -- Sessions -----------------------------------------------------------

    def record_session(self, profile_id: str, confidence: float) -> RecognitionSession:
        session = RecognitionSession(
            id=uuid.uuid4().hex,
            profile_id=profile_id,
            confidence=confidence,
            timestamp=datetime.now(UTC),
        )
        with self._lock:
            self._get(profile_id)
            self._sessions.append(session)
        logger.info("Recorded session for %s (confidence: %.3f)", profile_id, confidence)
        return session

    def list_sessions(self, profile_id: str | None = None, limit: int = 10) -> list[RecognitionSession]:
        """Return the most recent sessions, newest first."""
        with self._lock:
            if profile_id is not None:
                self._get(profile_id)
            sessions = [s for s in self._sessions if profile_id is None or s.profile_id == profile_id]
        return list(reversed(sessions))[:limit]

    def stats(self, window: timedelta) -> CatalogStats:
        cutoff = datetime.now(UTC) - window
        with self._lock:
            return CatalogStats(
                user_count=len(self._profiles),
                session_count=len(self._sessions),
                recent_sessions=sum(1 for s in self._sessions if s.timestamp >= cutoff),
            )

    # -- Internal -----------------------------------------------------------

    def _get(self, profile_id: str) -> Profile:
        try:
            return self._profiles[profile_id]
        except KeyError:
            raise ProfileNotFound(profile_id) from None

    def _find_email(self, email: str) -> Profile | None:
        wanted = email.casefold()
        for profile in self._profiles.values():
            if profile.email is not None and profile.email.casefold() == wanted:
                return profile
        return None
