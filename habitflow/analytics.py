"""Progress math and formatting for habits.

Progress
--------
A habit's goal is free text ("1 hour/day", "10 hrs/week", "30 mins/day").
For the progress bar only the *first integer* in the goal counts, read as
hours, with 1 hour as the fallback.  This is deliberately naive: "30
mins/day" reads as a 30 hour goal.  :func:`parse_goal_to_ms` is the
unit-aware parser used where an exact target matters.

    progress = min(100, time_spent_hours / goal_hours * 100)

Performance score
-----------------
The profile radar chart weights progress by importance::

    score = round(progress * importance / 10)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .records import Habit


MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE

DEFAULT_GOAL_HOURS = 1.0
RADAR_LABEL_LENGTH = 8

_FIRST_INT = re.compile(r"(\d+)")
_HOURS = re.compile(r"(\d+)\s*(?:hour|hr)s?", re.IGNORECASE)
_MINUTES = re.compile(r"(\d+)\s*(?:minute|min)s?", re.IGNORECASE)


# ── goal parsing ─────────────────────────────────────────────────────────


def parse_goal_hours(goal: str | None) -> float:
    """First integer in *goal*, or 1 when there is none (or it is 0)."""
    match = _FIRST_INT.search(goal or "")
    if not match:
        return DEFAULT_GOAL_HOURS
    hours = float(match.group(1))
    return hours if hours > 0 else DEFAULT_GOAL_HOURS


def parse_goal_to_ms(goal: str | None) -> int:
    """Sum the hour and minute amounts in *goal*; 0 when neither appears."""
    text = goal or ""
    total_minutes = 0
    hour_match = _HOURS.search(text)
    if hour_match:
        total_minutes += int(hour_match.group(1)) * 60
    minute_match = _MINUTES.search(text)
    if minute_match:
        total_minutes += int(minute_match.group(1))
    return total_minutes * MS_PER_MINUTE


# ── progress ─────────────────────────────────────────────────────────────


def progress_percent(habit: Habit) -> float:
    """0 → 100 progress toward the habit's goal."""
    actual_hours = habit.time_spent / MS_PER_HOUR
    return min(100.0, actual_hours / parse_goal_hours(habit.goal) * 100)


def weighted_score(habit: Habit) -> int:
    return round(progress_percent(habit) * habit.importance / 10)


def radar_points(habits: Iterable[Habit]) -> list[tuple[str, int, str]]:
    """``(label, score, full_name)`` per habit, labels cut to 8 chars."""
    points = []
    for habit in habits:
        label = habit.name
        if len(label) > RADAR_LABEL_LENGTH:
            label = label[:RADAR_LABEL_LENGTH] + "..."
        points.append((label, weighted_score(habit), habit.name))
    return points


@dataclass(frozen=True)
class ProfileStats:
    active_habits: int
    total_time_spent: int          # ms
    average_importance: float


def profile_stats(habits: Iterable[Habit]) -> ProfileStats:
    habits = list(habits)
    total = sum(h.time_spent for h in habits)
    average = sum(h.importance for h in habits) / len(habits) if habits else 0.0
    return ProfileStats(
        active_habits=len(habits),
        total_time_spent=total,
        average_importance=average,
    )


# ── formatting ───────────────────────────────────────────────────────────


def format_time(ms: int) -> str:
    """Stopwatch display: ``MM:SS``, or ``HH:MM:SS`` from one hour up."""
    total_seconds = max(0, int(ms)) // MS_PER_SECOND
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_duration(ms: int) -> str:
    """``"2h 5m"`` or ``"45m"``."""
    total_minutes = max(0, int(ms)) // MS_PER_MINUTE
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
