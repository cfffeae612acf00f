"""SQLAlchemy ORM models for HabitFlow's local store."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey
)
from sqlalchemy.orm import DeclarativeBase, relationship, validates

from ..records import DEFAULT_COLOR, clamp_importance


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Habit(Base):
    """A tracked habit and its running time total."""

    __tablename__ = "habits"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    importance = Column(Integer, nullable=False, default=5)  # 1-10
    goal = Column(String(255), nullable=False, default="")   # e.g. "1 hour/day"
    resources = Column(JSON, nullable=False, default=list)
    time_spent = Column(Integer, nullable=False, default=0)  # ms
    color = Column(String(16), nullable=False, default=DEFAULT_COLOR)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    sessions = relationship(
        "HabitSession",
        back_populates="habit",
        cascade="all, delete-orphan",
    )

    @validates("importance")
    def _clamp_importance(self, key, value):
        return clamp_importance(value)

    def __repr__(self) -> str:
        return (
            f"<Habit id={self.id} name={self.name!r} "
            f"time_spent={self.time_spent}>"
        )


class HabitSession(Base):
    """One stopped tracking interval attributed to a habit."""

    __tablename__ = "habit_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    habit_id = Column(
        String(36), ForeignKey("habits.id", ondelete="CASCADE"), nullable=False,
        index=True,
    )
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # ms
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    habit = relationship("Habit", back_populates="sessions")

    def __repr__(self) -> str:
        return (
            f"<HabitSession id={self.id} habit={self.habit_id} "
            f"duration={self.duration}>"
        )
