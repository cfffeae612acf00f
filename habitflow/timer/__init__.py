"""Timer package."""

from .state import TimerState, TimerStatus, IDLE_STATE, display_elapsed
from .state_store import TIMER_STATE_PATH, load_timer_state, save_timer_state
from .engine import (
    TimerEngine,
    SessionSaveError,
    DEFAULT_POLL_INTERVAL_MS,
)

__all__ = [
    "TimerEngine",
    "TimerState",
    "TimerStatus",
    "SessionSaveError",
    "IDLE_STATE",
    "DEFAULT_POLL_INTERVAL_MS",
    "TIMER_STATE_PATH",
    "display_elapsed",
    "load_timer_state",
    "save_timer_state",
]
