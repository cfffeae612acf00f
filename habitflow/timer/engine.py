"""Habit timer state machine for HabitFlow.

States
------
IDLE       No habit selected.
ARMED      Habit selected, nothing tracked yet, clock stopped.
RUNNING    Clock running for the selected habit.
PAUSED     Clock stopped with unsaved elapsed time.

Transitions
-----------
any      → ARMED      (select_and_arm)
IDLE     → RUNNING    (start)
ARMED    → RUNNING    (start)
PAUSED   → RUNNING    (start; resumes, elapsed time carries over)
RUNNING  → PAUSED     (pause)
any      → IDLE       (stop; saves a session when time was tracked)
any      → IDLE       (reset; discards unsaved time)

Timekeeping
-----------
The engine never counts ticks.  It keeps the wall-clock instant the clock
was last started plus the time banked by earlier pauses, so the displayed
value is always ``elapsed_time + (now - start_time)`` and can be polled at
any rate without drift.  All instants are epoch milliseconds from an
injectable clock.

There is one timer: starting a habit while another one runs is refused.

Given a ``state_path`` the engine writes every new state there, so a
restarted app can pick up where it left off (see :meth:`TimerEngine.restore`).
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .. import analytics
from ..records import Habit, Session, ms_to_datetime
from ..repository.base import HabitRepository, PartialSessionError, RepositoryError
from .state import IDLE_STATE, TimerState, TimerStatus, display_elapsed
from .state_store import load_timer_state, save_timer_state

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 100


def epoch_ms() -> int:
    return time.time_ns() // 1_000_000


class SessionSaveError(RepositoryError):
    """``stop()`` could not store the session.  The time is kept, paused."""

    def __init__(self, habit_id: str, duration: int) -> None:
        super().__init__(
            f"Could not save {duration} ms session for habit {habit_id!r}"
        )
        self.habit_id = habit_id
        self.duration = duration


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine(QObject):
    """Start/pause/stop timer that turns tracked time into saved sessions.

    Signals
    -------
    tick(elapsed_ms: int)
        Emitted by the display poller while running, and once after each
        transition.  Display only.
    state_changed(new_status: TimerStatus)
        Emitted on every state change.
    session_recorded(session: Session)
        Emitted after ``stop()`` saved a session.
    save_failed(error: RepositoryError)
        Emitted when ``stop()`` could not save.
    """

    tick = pyqtSignal(int)
    state_changed = pyqtSignal(object)
    session_recorded = pyqtSignal(object)
    save_failed = pyqtSignal(object)

    def __init__(
        self,
        repository: HabitRepository,
        parent: QObject | None = None,
        *,
        state: TimerState | None = None,
        clock: Callable[[], int] = epoch_ms,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        state_path: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._repository = repository
        self._clock = clock
        self._state: TimerState = state or IDLE_STATE
        self._state_path = state_path
        # stored by a stop() whose habit total failed; retried without re-insert
        self._pending_session: Session | None = None

        self._poller = QTimer(self)
        self._poller.setInterval(poll_interval_ms)
        self._poller.timeout.connect(self._on_poll)
        if self._state.running:
            self._poller.start()

    @classmethod
    def restore(
        cls, repository: HabitRepository, state_path: Path, **kwargs
    ) -> TimerEngine:
        """Engine resuming the state saved at *state_path*, and saving back to it."""
        return cls(
            repository,
            state=load_timer_state(state_path),
            state_path=state_path,
            **kwargs,
        )

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def selected_habit_id(self) -> str | None:
        return self._state.selected_habit_id

    @property
    def poll_interval_ms(self) -> int:
        return self._poller.interval()

    def elapsed(self, now: int | None = None) -> int:
        """Displayed elapsed milliseconds.  Never changes the state."""
        return display_elapsed(self._state, self._clock() if now is None else now)

    def progress_for(self, habit: Habit) -> float:
        return analytics.progress_percent(habit)

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def select_and_arm(self, habit_id: str) -> None:
        """Choose the habit to track next without starting the clock."""
        if self._state.running or self._state.elapsed_time:
            logger.warning(
                "Discarding %d ms of unsaved time for habit %s",
                self.elapsed(), self._state.selected_habit_id,
            )
        self._poller.stop()
        self._drop_pending()
        self._set_state(TimerState(selected_habit_id=habit_id))

    def start(self, habit_id: str) -> bool:
        """Start (or resume) the clock for *habit_id*.

        Refused while any habit is running.  Banked time carries over, even
        when *habit_id* differs from the habit it was tracked for.  Returns
        True if the clock started.
        """
        current = self._state
        if current.running:
            if current.selected_habit_id != habit_id:
                logger.debug(
                    "Ignoring start for %s: %s is already running",
                    habit_id, current.selected_habit_id,
                )
            return False

        self._set_state(TimerState(
            running=True,
            start_time=self._clock(),
            elapsed_time=current.elapsed_time,
            selected_habit_id=habit_id,
        ))
        self._poller.start()
        return True

    def pause(self) -> bool:
        """Bank the running interval and stop the clock."""
        if not self._state.running:
            return False
        self._poller.stop()
        self._set_state(TimerState(
            elapsed_time=self.elapsed(),
            selected_habit_id=self._state.selected_habit_id,
        ))
        return True

    def stop(self) -> Session | None:
        """Finish tracking: save a session when any time was tracked.

        The timer always ends IDLE on success.  If the repository fails the
        tracked time stays banked (PAUSED) so ``stop()`` can be retried,
        and :class:`SessionSaveError` is raised.  A retry after a session
        row was stored without its habit total only writes the total.
        """
        self._poller.stop()
        now = self._clock()
        total = display_elapsed(self._state, now)
        habit_id = self._state.selected_habit_id

        if total <= 0 or habit_id is None:
            self._set_state(IDLE_STATE)
            return None

        pending = self._pending_session
        if pending is not None and pending.habit_id == habit_id and pending.duration <= total:
            session = pending
        else:
            self._drop_pending()
            session = Session(
                habit_id=habit_id,
                start_time=ms_to_datetime(now - total),
                end_time=ms_to_datetime(now),
                duration=total,
                is_active=False,
            )
        try:
            saved = self._repository.record_session(session)
        except RepositoryError as exc:
            logger.error("Keeping %d ms for habit %s unsaved: %s", total, habit_id, exc)
            self._pending_session = (
                exc.session if isinstance(exc, PartialSessionError) else None
            )
            self._set_state(TimerState(elapsed_time=total, selected_habit_id=habit_id))
            self.save_failed.emit(exc)
            raise SessionSaveError(habit_id, total) from exc

        self._pending_session = None
        self.session_recorded.emit(saved)
        remainder = total - saved.duration
        if remainder > 0:
            # tracked after the earlier failed stop; saved as its own session
            self._set_state(TimerState(elapsed_time=remainder, selected_habit_id=habit_id))
            return self.stop()
        self._set_state(IDLE_STATE)
        return saved

    def reset(self) -> None:
        """Drop the current interval without saving anything."""
        self._poller.stop()
        self._drop_pending()
        self._set_state(IDLE_STATE)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _on_poll(self) -> None:
        self.tick.emit(self.elapsed())

    def _drop_pending(self) -> None:
        if self._pending_session is not None:
            logger.warning(
                "Session %s stays stored without its habit total",
                self._pending_session.id,
            )
            self._pending_session = None

    def _set_state(self, new_state: TimerState) -> None:
        self._state = new_state
        if self._state_path is not None:
            try:
                save_timer_state(new_state, self._state_path)
            except OSError as exc:
                logger.warning("Could not save timer state to %s: %s", self._state_path, exc)
        self.state_changed.emit(new_state.status)
        self.tick.emit(display_elapsed(new_state, self._clock()))
