"""HabitFlow: habit time tracking with progress analytics."""

__version__ = "0.1.0"
