"""Database package."""

from .db import configure_engine, get_session, init_db, seed_default_habits
from .models import Habit, HabitSession

__all__ = [
    "configure_engine", "get_session", "init_db", "seed_default_habits",
    "Habit", "HabitSession",
]
