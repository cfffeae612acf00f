"""Plain habit and session records shared by every repository backend.

Repositories hand these out instead of ORM rows so the timer engine and
the analytics helpers never care where the data came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


IMPORTANCE_MIN = 1
IMPORTANCE_MAX = 10
DEFAULT_COLOR = "#2563eb"


def clamp_importance(value: int) -> int:
    return max(IMPORTANCE_MIN, min(IMPORTANCE_MAX, int(value)))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ms_to_datetime(ms: int) -> datetime:
    """Epoch milliseconds → aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return round(value.timestamp() * 1000)


@dataclass
class Habit:
    """A user-defined activity tracked for time and progress."""

    name: str
    importance: int = 5
    goal: str = ""
    description: str = ""
    resources: list[str] = field(default_factory=list)
    time_spent: int = 0                    # milliseconds
    color: str = DEFAULT_COLOR
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.importance = clamp_importance(self.importance)
        self.resources = list(self.resources or [])


@dataclass(frozen=True)
class Session:
    """One completed block of tracked time.  Never mutated once saved."""

    habit_id: str
    start_time: datetime
    end_time: datetime | None
    duration: int                          # milliseconds
    is_active: bool = False
    id: str | None = None
