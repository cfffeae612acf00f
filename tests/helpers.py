"""Shared test helpers for HabitFlow."""

import copy
import itertools
import uuid
from datetime import datetime, timedelta, timezone

from habitflow.repository.base import RepositoryError
from habitflow.repository.local import LocalHabitRepository

# 2023-11-14 22:13:20 UTC, a whole second so datetimes round-trip exactly
T0 = 1_700_000_000_000


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FlakyRepository(LocalHabitRepository):
    """Local repository whose session writes fail while ``failing`` is set."""

    def __init__(self):
        super().__init__()
        self.failing = True
        self.attempts = 0

    def record_session(self, session):
        self.attempts += 1
        if self.failing:
            raise RepositoryError("connection refused")
        return super().record_session(session)


# ── fake Supabase client ─────────────────────────────────────────────────


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, client, table, op, payload=None):
        self._client = client
        self._table = table
        self._op = op
        self._payload = payload
        self._filters = []
        self._order = None
        self._limit = None

    def select(self, *columns):
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row):
        return all(row.get(col) == val for col, val in self._filters)

    def execute(self):
        self._client.calls.append((self._table, self._op))
        if (self._table, self._op) in self._client.fail_on:
            raise RuntimeError(f"{self._table} {self._op} unavailable")

        rows = self._client.tables.setdefault(self._table, [])
        if self._op == "insert":
            row = dict(self._payload)
            row.setdefault("id", str(uuid.uuid4()))
            stamp = self._client.next_timestamp()
            row.setdefault("created_at", stamp)
            if self._table == "habits":
                row.setdefault("updated_at", stamp)
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        matched = [r for r in rows if self._matches(r)]
        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
        elif self._op == "delete":
            self._client.tables[self._table] = [r for r in rows if not self._matches(r)]
        if self._order:
            column, desc = self._order
            matched.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResponse(copy.deepcopy(matched))


class FakeTable:
    def __init__(self, client, name):
        self._client = client
        self._name = name

    def insert(self, payload):
        return FakeQuery(self._client, self._name, "insert", payload)

    def select(self, *columns):
        return FakeQuery(self._client, self._name, "select")

    def update(self, payload):
        return FakeQuery(self._client, self._name, "update", payload)

    def delete(self):
        return FakeQuery(self._client, self._name, "delete")


class FakeSupabase:
    """In-memory imitation of ``supabase.Client.table(...)`` calls."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.fail_on: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []
        self._ticks = itertools.count()

    def table(self, name):
        return FakeTable(self, name)

    def next_timestamp(self) -> str:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return (base + timedelta(seconds=next(self._ticks))).isoformat()
