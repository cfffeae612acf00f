"""The persistence interface the timer engine and UI talk to.

Two implementations exist: :class:`~habitflow.repository.local.LocalHabitRepository`
(SQLAlchemy) and :class:`~habitflow.repository.remote.SupabaseHabitRepository`.
Both hand out :mod:`habitflow.records` objects and raise
:class:`RepositoryError` for anything that goes wrong underneath.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..records import Habit, Session


# Habit attributes callers may change through ``update``.
UPDATABLE_FIELDS = frozenset({
    "name", "description", "importance", "goal", "resources",
    "time_spent", "color",
})


class RepositoryError(Exception):
    """A storage operation failed (connectivity, authorization, SQL...)."""


class HabitNotFoundError(RepositoryError):
    def __init__(self, habit_id: str) -> None:
        super().__init__(f"Habit {habit_id!r} does not exist")
        self.habit_id = habit_id


class PartialSessionError(RepositoryError):
    """The session row was stored but the habit total was not updated.

    Pass :attr:`session` back to ``record_session`` to finish the write
    without inserting it a second time.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(
            f"Session {session.id!r} was saved but habit {session.habit_id!r} "
            "total was not updated"
        )
        self.session = session


def check_fields(fields: dict) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update habit field(s): {', '.join(sorted(unknown))}")


class HabitRepository(ABC):

    @abstractmethod
    def create(self, habit: Habit) -> Habit:
        """Store a new habit and return it with id and timestamps filled in."""

    @abstractmethod
    def get(self, habit_id: str) -> Habit | None:
        ...

    @abstractmethod
    def update(self, habit_id: str, **fields) -> Habit:
        """Apply *fields* to a habit and refresh its ``updated_at``.

        Raises :class:`HabitNotFoundError` when the habit is missing.
        """

    @abstractmethod
    def delete(self, habit_id: str) -> bool:
        """Delete a habit and its sessions.  False if it did not exist."""

    @abstractmethod
    def list(self) -> list[Habit]:
        """All habits, oldest first."""

    @abstractmethod
    def create_session(self, session: Session) -> Session:
        ...

    @abstractmethod
    def list_sessions(self, habit_id: str | None = None) -> list[Session]:
        """Sessions for one habit (or all of them), oldest first."""

    def record_session(self, session: Session) -> Session:
        """Save *session* and add its duration to the owning habit's total.

        A session that already has an id was stored by an earlier attempt
        that raised :class:`PartialSessionError`; only the total is written.
        Backends that can do both in one transaction override this.
        """
        habit = self.get(session.habit_id)
        if habit is None:
            raise HabitNotFoundError(session.habit_id)
        saved = session if session.id is not None else self.create_session(session)
        try:
            self.update(habit.id, time_spent=habit.time_spent + session.duration)
        except RepositoryError as exc:
            raise PartialSessionError(saved) from exc
        return saved
