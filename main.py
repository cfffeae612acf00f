#!/usr/bin/env python3
"""HabitFlow entry point.

Run with:
    python main.py
    python -m habitflow
"""

from habitflow.__main__ import main


if __name__ == "__main__":
    main()
