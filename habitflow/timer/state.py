"""Immutable timer snapshots shared by the engine and the state store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TimerStatus(Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimerState:
    """Snapshot of the timer.  ``start_time`` is set exactly when running."""

    running: bool = False
    start_time: int | None = None          # epoch ms
    elapsed_time: int = 0                  # ms banked by earlier pauses
    selected_habit_id: str | None = None

    def __post_init__(self) -> None:
        if self.running != (self.start_time is not None):
            raise ValueError("start_time must be set if and only if running")
        if self.elapsed_time < 0:
            raise ValueError("elapsed_time cannot be negative")

    @property
    def status(self) -> TimerStatus:
        if self.running:
            return TimerStatus.RUNNING
        if self.elapsed_time > 0:
            return TimerStatus.PAUSED
        if self.selected_habit_id is not None:
            return TimerStatus.ARMED
        return TimerStatus.IDLE


IDLE_STATE = TimerState()


def display_elapsed(state: TimerState, now: int) -> int:
    """Milliseconds to show for *state* at *now*.  Pure."""
    if state.running:
        return state.elapsed_time + max(0, now - state.start_time)
    return state.elapsed_time
