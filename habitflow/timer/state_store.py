"""Keep the timer alive across restarts.

The timer state is a handful of numbers, so it lives in a small JSON file
next to the settings:
    ~/.habitflow/timer.json

A running timer is saved with its start instant; reloading it later simply
counts the time the app was closed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

from ..database.db import APP_DATA_DIR
from .state import IDLE_STATE, TimerState

logger = logging.getLogger(__name__)

TIMER_STATE_PATH = APP_DATA_DIR / "timer.json"


def _is_ms(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def state_from_dict(data) -> TimerState:
    """Build a :class:`TimerState` from decoded JSON, checking every type."""
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    running = data.get("running", False)
    start_time = data.get("start_time")
    elapsed_time = data.get("elapsed_time", 0)
    habit_id = data.get("selected_habit_id")
    if not isinstance(running, bool):
        raise TypeError(f"running must be true or false, got {running!r}")
    if start_time is not None and not _is_ms(start_time):
        raise TypeError(f"start_time must be epoch ms, got {start_time!r}")
    if not _is_ms(elapsed_time):
        raise TypeError(f"elapsed_time must be ms, got {elapsed_time!r}")
    if habit_id is not None and not isinstance(habit_id, str):
        raise TypeError(f"selected_habit_id must be a string, got {habit_id!r}")
    return TimerState(
        running=running,
        start_time=start_time,
        elapsed_time=elapsed_time,
        selected_habit_id=habit_id,
    )


def load_timer_state(path: Path = TIMER_STATE_PATH) -> TimerState:
    """Read the saved state; anything missing or invalid yields IDLE."""
    try:
        if path.exists():
            return state_from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable timer state %s: %s", path, exc)
    return IDLE_STATE


def save_timer_state(state: TimerState, path: Path = TIMER_STATE_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(state), indent=2) + "\n", encoding="utf-8")
