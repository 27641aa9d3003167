"""Tests for the in-memory profile catalog."""

from __future__ import annotations

from datetime import timedelta

import pytest

from magicmirror.engine.recognizer import CatalogEntry
from magicmirror.store import DuplicateEmail, InMemoryProfileStore, PhotoInfo, ProfileNotFound


@pytest.fixture()
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


class TestProfiles:
    def test_create_and_get(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("  Ada  ", [0.1, 0.2], email="ada@example.com", photos=[PhotoInfo("front")])
        assert profile.name == "Ada"
        assert profile.embedding == (0.1, 0.2)
        assert profile.photos == (PhotoInfo("front"),)
        assert store.get_profile(profile.id) == profile

    def test_duplicate_email_case_insensitive(self, store: InMemoryProfileStore) -> None:
        store.create_profile("Ada", [0.0], email="ada@example.com")
        with pytest.raises(DuplicateEmail):
            store.create_profile("Other", [1.0], email=" ADA@example.com ")

    def test_blank_email_is_none(self, store: InMemoryProfileStore) -> None:
        first = store.create_profile("A", [0.0], email="  ")
        second = store.create_profile("B", [0.0], email="")
        assert first.email is None
        assert second.email is None

    def test_lookup_by_email(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("Ada", [0.0], email="ada@example.com")
        assert store.get_profile_by_email("Ada@Example.com") == profile
        assert store.get_profile_by_email("nobody@example.com") is None

    def test_list_newest_first(self, store: InMemoryProfileStore) -> None:
        first = store.create_profile("First", [0.0])
        second = store.create_profile("Second", [1.0])
        assert [p.id for p in store.list_profiles()] == [second.id, first.id]

    def test_update_overwrites_embedding(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("Ada", [0.0, 0.0])
        updated = store.update_profile(profile.id, embedding=[1.0, 1.0], name="Ada L.")
        assert updated.embedding == (1.0, 1.0)
        assert updated.name == "Ada L."
        assert updated.created_at == profile.created_at
        assert updated.updated_at >= profile.updated_at
        assert store.catalog() == [CatalogEntry(profile.id, "Ada L.", (1.0, 1.0))]

    def test_update_email_conflict(self, store: InMemoryProfileStore) -> None:
        store.create_profile("Ada", [0.0], email="ada@example.com")
        bob = store.create_profile("Bob", [0.0], email="bob@example.com")
        with pytest.raises(DuplicateEmail):
            store.update_profile(bob.id, email="ada@example.com")
        assert store.update_profile(bob.id, email="BOB@example.com").email == "BOB@example.com"

    def test_missing_profile(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFound):
            store.get_profile("nope")
        with pytest.raises(ProfileNotFound):
            store.update_profile("nope", name="x")

    def test_delete(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("Ada", [0.0])
        store.record_session(profile.id, 0.9)
        assert store.delete_profile(profile.id) is True
        assert store.delete_profile(profile.id) is False
        assert store.catalog() == []
        assert store.list_sessions() == []


class TestCatalog:
    def test_snapshot_in_creation_order(self, store: InMemoryProfileStore) -> None:
        a = store.create_profile("A", [0.0])
        b = store.create_profile("B", [1.0])
        assert [e.profile_id for e in store.catalog()] == [a.id, b.id]

    def test_snapshot_is_a_copy(self, store: InMemoryProfileStore) -> None:
        store.create_profile("A", [0.0])
        snapshot = store.catalog()
        store.create_profile("B", [1.0])
        assert len(snapshot) == 1


class TestSessions:
    def test_record_and_list(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("Ada", [0.0])
        store.record_session(profile.id, 0.7)
        latest = store.record_session(profile.id, 0.8)
        sessions = store.list_sessions(profile.id)
        assert sessions[0] == latest
        assert [s.confidence for s in sessions] == [0.8, 0.7]
        assert store.list_sessions(profile.id, limit=1) == [latest]

    def test_unknown_profile(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFound):
            store.record_session("nope", 0.9)
        with pytest.raises(ProfileNotFound):
            store.list_sessions("nope")

    def test_stats(self, store: InMemoryProfileStore) -> None:
        profile = store.create_profile("Ada", [0.0])
        store.create_profile("Bob", [1.0])
        store.record_session(profile.id, 0.9)
        stats = store.stats(timedelta(hours=24))
        assert stats.user_count == 2
        assert stats.session_count == 1
        assert stats.recent_sessions == 1

    def test_retention_keeps_newest(self) -> None:
        store = InMemoryProfileStore(max_sessions=2)
        ada = store.create_profile("Ada", [0.0])
        bob = store.create_profile("Bob", [1.0])
        store.record_session(ada.id, 0.1)
        second = store.record_session(bob.id, 0.2)
        third = store.record_session(ada.id, 0.3)

        assert store.list_sessions() == [third, second]
        assert store.stats(timedelta(hours=24)).session_count == 2

        store.delete_profile(bob.id)
        store.record_session(ada.id, 0.4)
        store.record_session(ada.id, 0.5)
        assert [s.confidence for s in store.list_sessions()] == [0.5, 0.4]
