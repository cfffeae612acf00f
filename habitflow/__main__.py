"""Allow running HabitFlow as a module: python -m habitflow.

Prints the current habits with their progress, the saved timer, and a few
coaching tips.
"""

import logging
import sys

from .analytics import format_duration, format_time, profile_stats, progress_percent
from .database.db import seed_default_habits
from .log import setup_logging
from .repository import LocalHabitRepository, RepositoryError, build_repository
from .settings import load_settings
from .suggestions import SuggestionClient
from .timer import TimerStatus, display_elapsed, load_timer_state
from .timer.engine import epoch_ms

logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    try:
        repository = build_repository(settings)
        if isinstance(repository, LocalHabitRepository):
            seed_default_habits()
        habits = repository.list()
    except (RepositoryError, ValueError) as exc:
        logger.error("Could not open habit storage: %s", exc)
        sys.exit(1)

    print("HabitFlow ready!")
    for habit in habits:
        print(
            f"  {habit.name:<20} {progress_percent(habit):5.1f}%  "
            f"{format_duration(habit.time_spent)} / {habit.goal}"
        )

    timer = load_timer_state()
    if timer.status is not TimerStatus.IDLE:
        names = {h.id: h.name for h in habits}
        name = names.get(timer.selected_habit_id, timer.selected_habit_id)
        print(
            f"\nTimer {timer.status.value}: {name} "
            f"{format_time(display_elapsed(timer, epoch_ms()))}"
        )

    stats = profile_stats(habits)
    print(
        f"\n{stats.active_habits} habits, "
        f"{format_duration(stats.total_time_spent)} tracked, "
        f"average importance {stats.average_importance:.1f}"
    )

    print("\nSuggestions:")
    for tip in SuggestionClient.from_settings(settings).suggest(habits):
        print(f"  - {tip}")


if __name__ == "__main__":
    main()
