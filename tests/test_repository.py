"""Tests for both habit repository backends and the backend factory."""

from datetime import datetime, timezone

import pytest

from habitflow.records import Habit, Session, datetime_to_ms, ms_to_datetime
from habitflow.repository import (
    HabitNotFoundError, LocalHabitRepository, PartialSessionError, RepositoryError,
    build_repository,
)
from habitflow.repository.remote import SupabaseHabitRepository
from habitflow.settings import Settings

from helpers import FakeSupabase, T0


def _session(habit_id, start=T0, duration=5000):
    return Session(
        habit_id=habit_id,
        start_time=ms_to_datetime(start),
        end_time=ms_to_datetime(start + duration),
        duration=duration,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  LOCAL (SQLAlchemy)
# ═══════════════════════════════════════════════════════════════════════════


class TestLocalHabits:

    def test_create_assigns_id_and_timestamps(self, repo):
        h = repo.create(Habit(name="Reading", goal="1 hour/day",
                              resources=["Local library"]))
        assert h.id
        assert h.created_at is not None
        assert h.updated_at is not None
        assert h.created_at.tzinfo is not None
        assert h.resources == ["Local library"]
        assert h.time_spent == 0

    def test_get_round_trips_fields(self, repo):
        created = repo.create(Habit(
            name="Exercise", importance=9, goal="45 mins/day",
            description="Move", resources=["Gym"], color="#dc2626",
        ))
        loaded = repo.get(created.id)
        assert loaded == created

    def test_get_missing_returns_none(self, repo):
        assert repo.get("nope") is None

    def test_importance_clamped_on_create(self, repo):
        assert repo.create(Habit(name="a", importance=42)).importance == 10
        assert repo.create(Habit(name="b", importance=-3)).importance == 1

    def test_importance_clamped_on_update(self, repo, habit):
        assert repo.update(habit.id, importance=0).importance == 1
        assert repo.update(habit.id, importance=11).importance == 10

    def test_update_fields(self, repo, habit):
        updated = repo.update(habit.id, name="Deep Reading", goal="2 hours/day",
                              resources=["Kindle"])
        assert updated.name == "Deep Reading"
        assert updated.goal == "2 hours/day"
        assert updated.resources == ["Kindle"]
        assert repo.get(habit.id).name == "Deep Reading"

    def test_update_refreshes_updated_at(self, repo, habit):
        updated = repo.update(habit.id, description="new")
        assert updated.updated_at >= habit.updated_at
        assert updated.created_at == habit.created_at

    def test_update_missing_raises(self, repo):
        with pytest.raises(HabitNotFoundError):
            repo.update("nope", name="x")

    def test_update_unknown_field_rejected(self, repo, habit):
        with pytest.raises(ValueError):
            repo.update(habit.id, id="other")

    def test_list(self, repo, habit, other_habit):
        names = {h.name for h in repo.list()}
        assert names == {"Reading", "Exercise"}

    def test_delete(self, repo, habit):
        assert repo.delete(habit.id) is True
        assert repo.get(habit.id) is None
        assert repo.delete(habit.id) is False

    def test_delete_removes_sessions(self, repo, habit, other_habit):
        repo.create_session(_session(habit.id))
        repo.create_session(_session(other_habit.id))
        repo.delete(habit.id)
        remaining = repo.list_sessions()
        assert [s.habit_id for s in remaining] == [other_habit.id]


class TestLocalSessions:

    def test_create_session(self, repo, habit):
        s = repo.create_session(_session(habit.id))
        assert s.id
        assert s.duration == 5000
        assert datetime_to_ms(s.start_time) == T0
        assert datetime_to_ms(s.end_time) == T0 + 5000
        assert s.is_active is False

    def test_create_session_does_not_touch_habit_total(self, repo, habit):
        repo.create_session(_session(habit.id))
        assert repo.get(habit.id).time_spent == 0

    def test_create_session_for_missing_habit(self, repo):
        with pytest.raises(HabitNotFoundError):
            repo.create_session(_session("nope"))

    def test_list_sessions_filters_and_orders(self, repo, habit, other_habit):
        repo.create_session(_session(habit.id, start=T0 + 60_000))
        repo.create_session(_session(habit.id, start=T0))
        repo.create_session(_session(other_habit.id))
        sessions = repo.list_sessions(habit.id)
        assert [datetime_to_ms(s.start_time) for s in sessions] == [T0, T0 + 60_000]
        assert len(repo.list_sessions()) == 3

    def test_record_session_updates_total(self, repo, habit):
        repo.update(habit.id, time_spent=1000)
        saved = repo.record_session(_session(habit.id, duration=4000))
        assert saved.id
        assert repo.get(habit.id).time_spent == 5000
        assert len(repo.list_sessions(habit.id)) == 1

    def test_record_session_with_stored_session_only_adds_total(self, repo, habit):
        stored = repo.create_session(_session(habit.id, duration=4000))
        assert repo.record_session(stored).id == stored.id
        assert len(repo.list_sessions(habit.id)) == 1
        assert repo.get(habit.id).time_spent == 4000

    def test_record_session_missing_habit_writes_nothing(self, repo):
        with pytest.raises(HabitNotFoundError):
            repo.record_session(_session("nope"))
        assert repo.list_sessions() == []

    def test_storage_errors_are_wrapped(self, repo, monkeypatch):
        from sqlalchemy.exc import OperationalError
        import habitflow.repository.local as local

        def broken_session():
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        monkeypatch.setattr(local, "get_session", broken_session)
        with pytest.raises(RepositoryError):
            repo.list()


# ═══════════════════════════════════════════════════════════════════════════
#  REMOTE (Supabase)
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def supabase_client():
    return FakeSupabase()


@pytest.fixture
def remote(supabase_client):
    return SupabaseHabitRepository(supabase_client, user_id="user-1")


class TestSupabaseHabits:

    def test_create(self, remote, supabase_client):
        h = remote.create(Habit(name="Reading", importance=8, goal="1 hour/day",
                                resources=["Goodreads"]))
        assert h.id
        assert h.name == "Reading"
        assert h.resources == ["Goodreads"]
        assert isinstance(h.created_at, datetime)
        row = supabase_client.tables["habits"][0]
        assert row["user_id"] == "user-1"
        assert row["time_spent"] == 0

    def test_get_and_list(self, remote):
        a = remote.create(Habit(name="A"))
        remote.create(Habit(name="B"))
        assert remote.get(a.id).name == "A"
        assert remote.get("missing") is None
        assert [h.name for h in remote.list()] == ["A", "B"]

    def test_update(self, remote, supabase_client):
        h = remote.create(Habit(name="A"))
        updated = remote.update(h.id, importance=99, goal="2 hours/day")
        assert updated.importance == 10
        assert updated.goal == "2 hours/day"
        assert supabase_client.tables["habits"][0]["updated_at"] != h.updated_at.isoformat()

    def test_update_missing(self, remote):
        with pytest.raises(HabitNotFoundError):
            remote.update("missing", name="x")

    def test_delete_removes_sessions(self, remote, supabase_client):
        h = remote.create(Habit(name="A"))
        remote.create_session(_session(h.id))
        assert remote.delete(h.id) is True
        assert supabase_client.tables["habits"] == []
        assert supabase_client.tables["habit_sessions"] == []
        assert remote.delete(h.id) is False

    def test_errors_are_wrapped(self, remote, supabase_client):
        supabase_client.fail_on.add(("habits", "select"))
        with pytest.raises(RepositoryError):
            remote.list()

    def test_no_user_id_leaves_rows_unowned(self, supabase_client):
        repo = SupabaseHabitRepository(supabase_client)
        repo.create(Habit(name="A"))
        assert "user_id" not in supabase_client.tables["habits"][0]


class TestSupabaseSessions:

    def test_create_and_list_sessions(self, remote):
        h = remote.create(Habit(name="A"))
        remote.create_session(_session(h.id, start=T0 + 1000))
        remote.create_session(_session(h.id, start=T0))
        sessions = remote.list_sessions(h.id)
        assert [datetime_to_ms(s.start_time) for s in sessions] == [T0, T0 + 1000]
        assert all(s.end_time.tzinfo == timezone.utc for s in sessions)

    def test_record_session(self, remote):
        h = remote.create(Habit(name="A", time_spent=1000))
        saved = remote.record_session(_session(h.id, duration=2500))
        assert saved.duration == 2500
        assert remote.get(h.id).time_spent == 3500

    def test_record_session_rolls_back_when_total_fails(self, remote, supabase_client):
        h = remote.create(Habit(name="A"))
        supabase_client.fail_on.add(("habits", "update"))
        with pytest.raises(RepositoryError):
            remote.record_session(_session(h.id))
        assert supabase_client.tables["habit_sessions"] == []
        assert remote.get(h.id).time_spent == 0

    def test_record_session_reports_session_it_could_not_roll_back(self, remote, supabase_client):
        h = remote.create(Habit(name="A"))
        supabase_client.fail_on.update({("habits", "update"), ("habit_sessions", "delete")})
        with pytest.raises(PartialSessionError) as info:
            remote.record_session(_session(h.id))
        stored = supabase_client.tables["habit_sessions"]
        assert len(stored) == 1
        assert info.value.session.id == stored[0]["id"]

        supabase_client.fail_on.clear()
        remote.record_session(info.value.session)
        assert len(supabase_client.tables["habit_sessions"]) == 1
        assert remote.get(h.id).time_spent == 5000

    def test_retry_of_stored_session_failing_again_keeps_it(self, remote, supabase_client):
        h = remote.create(Habit(name="A"))
        stored = remote.create_session(_session(h.id))
        supabase_client.fail_on.add(("habits", "update"))
        with pytest.raises(PartialSessionError) as info:
            remote.record_session(stored)
        assert info.value.session == stored
        assert len(supabase_client.tables["habit_sessions"]) == 1

    def test_record_session_missing_habit(self, remote, supabase_client):
        with pytest.raises(HabitNotFoundError):
            remote.record_session(_session("missing"))
        assert supabase_client.tables.get("habit_sessions", []) == []

    def test_from_credentials_requires_url_and_key(self):
        with pytest.raises(RepositoryError):
            SupabaseHabitRepository.from_credentials("", "")


# ═══════════════════════════════════════════════════════════════════════════
#  FACTORY
# ═══════════════════════════════════════════════════════════════════════════


class TestBuildRepository:

    def test_local(self):
        repo = build_repository(Settings(database_url="sqlite:///:memory:"))
        assert isinstance(repo, LocalHabitRepository)
        assert repo.list() == []

    def test_supabase(self, monkeypatch, supabase_client):
        import habitflow.repository.remote as remote_mod

        seen = {}

        def fake_create_client(url, key):
            seen["args"] = (url, key)
            return supabase_client

        monkeypatch.setattr(remote_mod, "create_client", fake_create_client)
        repo = build_repository(Settings(
            storage_backend="supabase",
            supabase_url="https://example.supabase.co",
            supabase_key="anon-key",
        ))
        assert isinstance(repo, SupabaseHabitRepository)
        assert seen["args"] == ("https://example.supabase.co", "anon-key")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_repository(Settings(storage_backend="firebase"))
