"""Supabase-backed habit repository.

Expects two tables with snake_case columns::

    habits(id, user_id, name, description, importance, goal, resources,
           time_spent, color, created_at, updated_at)
    habit_sessions(id, user_id, habit_id, start_time, end_time,
                   duration, is_active, created_at)

Row-level security normally scopes rows to the signed-in user; when a
``user_id`` is configured it is written on every insert.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from supabase import Client, create_client

from ..records import DEFAULT_COLOR, Habit, Session, clamp_importance, utcnow
from .base import (
    HabitNotFoundError, HabitRepository, PartialSessionError, RepositoryError,
    check_fields,
)

logger = logging.getLogger(__name__)

HABITS_TABLE = "habits"
SESSIONS_TABLE = "habit_sessions"


def _parse_timestamp(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _habit_from_row(row: dict) -> Habit:
    return Habit(
        id=row["id"],
        name=row["name"],
        description=row.get("description") or "",
        importance=row.get("importance") or 5,
        goal=row.get("goal") or "",
        resources=row.get("resources") or [],
        time_spent=row.get("time_spent") or 0,
        color=row.get("color") or DEFAULT_COLOR,
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _session_from_row(row: dict) -> Session:
    return Session(
        id=row["id"],
        habit_id=row["habit_id"],
        start_time=_parse_timestamp(row["start_time"]),
        end_time=_parse_timestamp(row.get("end_time")),
        duration=row.get("duration") or 0,
        is_active=bool(row.get("is_active")),
    )


class SupabaseHabitRepository(HabitRepository):

    def __init__(self, client: Client, user_id: str | None = None) -> None:
        self._client = client
        self._user_id = user_id

    @classmethod
    def from_credentials(
        cls, url: str, key: str, user_id: str | None = None
    ) -> SupabaseHabitRepository:
        if not url or not key:
            raise RepositoryError("Supabase URL and key are required")
        try:
            client = create_client(url, key)
        except Exception as exc:
            raise RepositoryError(f"Could not connect to Supabase: {exc}") from exc
        return cls(client, user_id=user_id)

    # ── helpers ───────────────────────────────────────────────────────────

    def _execute(self, query, action: str) -> list[dict]:
        try:
            resp = query.execute()
        except Exception as exc:
            logger.error("Supabase failed to %s: %s", action, exc)
            raise RepositoryError(f"Could not {action}: {exc}") from exc
        return resp.data or []

    def _owned(self, payload: dict) -> dict:
        if self._user_id:
            payload["user_id"] = self._user_id
        return payload

    # ── habits ────────────────────────────────────────────────────────────

    def create(self, habit: Habit) -> Habit:
        payload = self._owned({
            "name": habit.name,
            "description": habit.description,
            "importance": habit.importance,
            "goal": habit.goal,
            "resources": list(habit.resources),
            "time_spent": habit.time_spent,
            "color": habit.color,
        })
        rows = self._execute(
            self._client.table(HABITS_TABLE).insert(payload), "create habit"
        )
        if not rows:
            raise RepositoryError("Supabase returned no row for the new habit")
        created = _habit_from_row(rows[0])
        logger.info("Created habit %s (%s)", created.id, created.name)
        return created

    def get(self, habit_id: str) -> Habit | None:
        rows = self._execute(
            self._client.table(HABITS_TABLE).select("*").eq("id", habit_id).limit(1),
            "load habit",
        )
        return _habit_from_row(rows[0]) if rows else None

    def update(self, habit_id: str, **fields) -> Habit:
        check_fields(fields)
        payload = dict(fields)
        if "importance" in payload:
            payload["importance"] = clamp_importance(payload["importance"])
        if "resources" in payload:
            payload["resources"] = list(payload["resources"])
        payload["updated_at"] = utcnow().isoformat()
        rows = self._execute(
            self._client.table(HABITS_TABLE).update(payload).eq("id", habit_id),
            "update habit",
        )
        if not rows:
            raise HabitNotFoundError(habit_id)
        return _habit_from_row(rows[0])

    def delete(self, habit_id: str) -> bool:
        self._execute(
            self._client.table(SESSIONS_TABLE).delete().eq("habit_id", habit_id),
            "delete sessions",
        )
        rows = self._execute(
            self._client.table(HABITS_TABLE).delete().eq("id", habit_id),
            "delete habit",
        )
        if rows:
            logger.info("Deleted habit %s", habit_id)
        return bool(rows)

    def list(self) -> list[Habit]:
        rows = self._execute(
            self._client.table(HABITS_TABLE).select("*").order("created_at"),
            "list habits",
        )
        return [_habit_from_row(r) for r in rows]

    # ── sessions ──────────────────────────────────────────────────────────

    def create_session(self, session: Session) -> Session:
        payload = self._owned({
            "habit_id": session.habit_id,
            "start_time": session.start_time.isoformat(),
            "end_time": session.end_time.isoformat() if session.end_time else None,
            "duration": session.duration,
            "is_active": session.is_active,
        })
        rows = self._execute(
            self._client.table(SESSIONS_TABLE).insert(payload), "save session"
        )
        if not rows:
            raise RepositoryError("Supabase returned no row for the new session")
        return _session_from_row(rows[0])

    def list_sessions(self, habit_id: str | None = None) -> list[Session]:
        query = self._client.table(SESSIONS_TABLE).select("*")
        if habit_id is not None:
            query = query.eq("habit_id", habit_id)
        rows = self._execute(query.order("start_time"), "list sessions")
        return [_session_from_row(r) for r in rows]

    def record_session(self, session: Session) -> Session:
        """Save the session, then the new habit total.

        Supabase has no multi-statement transaction over the REST API, so a
        failed total update deletes the session again before re-raising.  If
        that delete fails too, :class:`PartialSessionError` carries the
        stored session; passing it back here only writes the total.
        """
        habit = self.get(session.habit_id)
        if habit is None:
            raise HabitNotFoundError(session.habit_id)
        resumed = session.id is not None
        saved = session if resumed else self.create_session(session)
        try:
            self.update(habit.id, time_spent=habit.time_spent + session.duration)
        except RepositoryError as exc:
            if resumed:
                raise PartialSessionError(saved) from exc
            try:
                self._execute(
                    self._client.table(SESSIONS_TABLE).delete().eq("id", saved.id),
                    "roll back session",
                )
            except RepositoryError:
                logger.error(
                    "Session %s was saved but habit %s total was not updated",
                    saved.id, habit.id,
                )
                raise PartialSessionError(saved) from exc
            raise
        logger.info("Recorded %d ms session for habit %s", saved.duration, habit.id)
        return saved
