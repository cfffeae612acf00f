"""Local SQLAlchemy-backed habit repository."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from ..database.db import get_session
from ..database.models import Habit as HabitRow, HabitSession as SessionRow
from ..records import Habit, Session
from .base import HabitNotFoundError, HabitRepository, RepositoryError, check_fields

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _habit_from_row(row: HabitRow) -> Habit:
    return Habit(
        id=row.id,
        name=row.name,
        description=row.description or "",
        importance=row.importance,
        goal=row.goal or "",
        resources=list(row.resources or []),
        time_spent=row.time_spent or 0,
        color=row.color,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _session_from_row(row: SessionRow) -> Session:
    return Session(
        id=row.id,
        habit_id=row.habit_id,
        start_time=_aware(row.start_time),
        end_time=_aware(row.end_time),
        duration=row.duration,
        is_active=row.is_active,
    )


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Local store failed to %s: %s", action, exc)
        raise RepositoryError(f"Could not {action}: {exc}") from exc


class LocalHabitRepository(HabitRepository):
    """Reads and writes through :func:`habitflow.database.db.get_session`.

    Call :func:`habitflow.database.db.init_db` before first use.
    """

    def create(self, habit: Habit) -> Habit:
        with _storage_errors("create habit"), get_session() as db:
            row = HabitRow(
                name=habit.name,
                description=habit.description,
                importance=habit.importance,
                goal=habit.goal,
                resources=list(habit.resources),
                time_spent=habit.time_spent,
                color=habit.color,
            )
            db.add(row)
            db.flush()
            created = _habit_from_row(row)
        logger.info("Created habit %s (%s)", created.id, created.name)
        return created

    def get(self, habit_id: str) -> Habit | None:
        with _storage_errors("load habit"), get_session() as db:
            row = db.get(HabitRow, habit_id)
            return _habit_from_row(row) if row else None

    def update(self, habit_id: str, **fields) -> Habit:
        check_fields(fields)
        with _storage_errors("update habit"), get_session() as db:
            row = db.get(HabitRow, habit_id)
            if row is None:
                raise HabitNotFoundError(habit_id)
            for key, value in fields.items():
                setattr(row, key, list(value) if key == "resources" else value)
            # onupdate only fires when a column changed; bump it regardless.
            row.updated_at = datetime.now(timezone.utc)
            db.flush()
            return _habit_from_row(row)

    def delete(self, habit_id: str) -> bool:
        with _storage_errors("delete habit"), get_session() as db:
            row = db.get(HabitRow, habit_id)
            if row is None:
                return False
            db.delete(row)
        logger.info("Deleted habit %s", habit_id)
        return True

    def list(self) -> list[Habit]:
        with _storage_errors("list habits"), get_session() as db:
            rows = db.query(HabitRow).order_by(HabitRow.created_at).all()
            return [_habit_from_row(r) for r in rows]

    def create_session(self, session: Session) -> Session:
        with _storage_errors("save session"), get_session() as db:
            if db.get(HabitRow, session.habit_id) is None:
                raise HabitNotFoundError(session.habit_id)
            row = SessionRow(
                habit_id=session.habit_id,
                start_time=session.start_time,
                end_time=session.end_time,
                duration=session.duration,
                is_active=session.is_active,
            )
            db.add(row)
            db.flush()
            return _session_from_row(row)

    def list_sessions(self, habit_id: str | None = None) -> list[Session]:
        with _storage_errors("list sessions"), get_session() as db:
            query = db.query(SessionRow)
            if habit_id is not None:
                query = query.filter(SessionRow.habit_id == habit_id)
            rows = query.order_by(SessionRow.start_time).all()
            return [_session_from_row(r) for r in rows]

    def record_session(self, session: Session) -> Session:
        """Insert the session and bump the habit total in one transaction.

        A session that already has an id is only added to the total.
        """
        with _storage_errors("record session"), get_session() as db:
            habit = db.get(HabitRow, session.habit_id)
            if habit is None:
                raise HabitNotFoundError(session.habit_id)
            if session.id is None:
                row = SessionRow(
                    habit_id=session.habit_id,
                    start_time=session.start_time,
                    end_time=session.end_time,
                    duration=session.duration,
                    is_active=session.is_active,
                )
                db.add(row)
            else:
                row = db.get(SessionRow, session.id)
                if row is None:
                    raise RepositoryError(f"Session {session.id!r} does not exist")
            habit.time_spent = (habit.time_spent or 0) + session.duration
            habit.updated_at = datetime.now(timezone.utc)
            db.flush()
            recorded = _session_from_row(row)
        logger.info(
            "Recorded %d ms session for habit %s", recorded.duration, recorded.habit_id
        )
        return recorded
