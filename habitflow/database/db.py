"""Database connection and session management."""

import logging
from pathlib import Path
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, Session as OrmSession

from .models import Base, Habit

logger = logging.getLogger(__name__)

# ── paths ────────────────────────────────────────────────────────────────────

APP_DATA_DIR = Path.home() / ".habitflow"
DB_PATH = APP_DATA_DIR / "habitflow.db"
DEFAULT_DATABASE_URL = f"sqlite:///{DB_PATH}"

# ── engine & session factory (created lazily) ─────────────────────────────

_engine = None
_SessionFactory = None


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=False)


def _get_engine():
    global _engine
    if _engine is None:
        APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
        _engine = _make_engine(DEFAULT_DATABASE_URL)
    return _engine


def _get_session_factory():
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


# ── public API ────────────────────────────────────────────────────────────


def configure_engine(url: str) -> None:
    """Override the database connection URL.  Used by tests to point at
    an in-memory SQLite database instead of the real one on disk."""
    global _engine, _SessionFactory
    _SessionFactory = None
    _engine = _make_engine(url)
    logger.debug("Database engine configured for %s", _engine.url)


def _run_migrations(engine) -> None:
    """Schema migrations for existing databases.

    Runs after ``create_all`` so new columns exist in fresh installs.
    Each migration is idempotent.
    """
    insp = inspect(engine)
    table_names = set(insp.get_table_names())

    with engine.connect() as conn:
        # ── M1: add color column to habits ─────────────────────────────
        if "habits" in table_names:
            columns = {c["name"] for c in insp.get_columns("habits")}
            if "color" not in columns:
                logger.info("Migrating habits table: adding color column")
                conn.execute(text(
                    "ALTER TABLE habits "
                    "ADD COLUMN color VARCHAR(16) NOT NULL DEFAULT '#2563eb'"
                ))

        conn.commit()


def init_db() -> None:
    """Create all tables and run migrations."""
    engine = _get_engine()
    Base.metadata.create_all(engine)
    _run_migrations(engine)


# Starter habits for a brand-new store.
DEFAULT_HABITS = (
    {
        "name": "Reading",
        "importance": 8,
        "resources": ["https://goodreads.com", "Local library"],
        "description": "Daily reading to expand knowledge and vocabulary",
        "goal": "1 hour/day",
        "color": "#2563eb",
    },
    {
        "name": "Exercise",
        "importance": 9,
        "resources": ["Gym membership", "YouTube fitness channels"],
        "description": "Regular physical activity for health and wellness",
        "goal": "45 mins/day",
        "color": "#dc2626",
    },
    {
        "name": "Meditation",
        "importance": 7,
        "resources": ["Headspace app", "Calm app"],
        "description": "Mindfulness practice for mental clarity",
        "goal": "20 mins/day",
        "color": "#059669",
    },
)


def seed_default_habits() -> int:
    """Insert the starter habits when the store is empty.

    Returns the number of habits added.
    """
    with get_session() as session:
        if session.query(Habit).count() > 0:
            return 0
        for data in DEFAULT_HABITS:
            session.add(Habit(**data))
    logger.info("Seeded %d default habits", len(DEFAULT_HABITS))
    return len(DEFAULT_HABITS)


@contextmanager
def get_session():
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    factory = _get_session_factory()
    session: OrmSession = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
