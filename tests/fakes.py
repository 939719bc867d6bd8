"""
In-memory stand-ins for the async Supabase client and the insight service.

The fake client mimics the PostgREST query builder chain used by the remote
store (``table(...).select(...).eq(...).order(...).execute()``) closely
enough for the journal tables, and records every executed request.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from innerflow.utils.insight_service import Insight


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]


class FakeQuery:
    def __init__(self, client: 'FakeSupabase', table_name: str):
        self.client = client
        self.table_name = table_name
        self.operation = 'select'
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.ordering: List[tuple] = []
        self.row_limit: Optional[int] = None

    def select(self, *columns):
        self.operation = 'select'
        return self

    def upsert(self, row, on_conflict=None):
        self.operation = 'upsert'
        self.payload = row
        self.on_conflict = on_conflict
        return self

    def insert(self, rows):
        self.operation = 'insert'
        self.payload = rows
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def in_(self, column, values):
        wanted = {str(value) for value in values}
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.client.rows(self.table_name) if all(check(row) for check in self.filters)]

    async def execute(self) -> FakeResponse:
        # Give other tasks a chance to run, as a real request would
        await asyncio.sleep(0)
        self.client.calls.append((self.table_name, self.operation, self.payload))
        self.client.check_failure(self.table_name, self.operation, self.payload)
        handler = getattr(self, f'_execute_{self.operation}')
        return FakeResponse(handler())

    def _execute_select(self):
        rows = self._matching()
        for column, desc in reversed(self.ordering):
            rows.sort(key=lambda row: str(row.get(column)), reverse=desc)
        if self.row_limit is not None:
            rows = rows[:self.row_limit]
        return [dict(row) for row in rows]

    def _execute_upsert(self):
        table = self.client.rows(self.table_name)
        keys = [key.strip() for key in (self.on_conflict or 'id').split(',')]
        for row in table:
            if all(str(row.get(key)) == str(self.payload.get(key)) for key in keys):
                row.update(self.payload)
                return [dict(row)]
        row = dict(self.payload)
        row.setdefault('id', str(uuid4()))
        row.setdefault('created_at', datetime.now(timezone.utc).isoformat())
        table.append(row)
        return [dict(row)]

    def _execute_insert(self):
        table = self.client.rows(self.table_name)
        inserted = []
        for payload in self.payload:
            row = dict(payload)
            row.setdefault('id', str(uuid4()))
            row.setdefault('created_at', datetime.now(timezone.utc).isoformat())
            table.append(row)
            inserted.append(dict(row))
        return inserted

    def _execute_delete(self):
        deleted = self._matching()
        self.client.tables[self.table_name] = [
            row for row in self.client.rows(self.table_name) if row not in deleted
        ]
        return deleted


class FakeSupabase:
    """Async Supabase client double backed by plain lists of rows."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.offline = False
        self._failures: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(name, [])

    def fail(self, table_name: str, operation: str, when: Optional[Callable[[Any], bool]] = None,
             message: str = 'simulated failure'):
        """Make matching requests raise until ``recover`` is called."""
        self._failures.append((table_name, operation, when, message))

    def recover(self):
        self._failures.clear()
        self.offline = False

    def check_failure(self, table_name: str, operation: str, payload: Any):
        if self.offline:
            raise ConnectionError('network unreachable')
        for failing_table, failing_operation, when, message in self._failures:
            if failing_table == table_name and failing_operation == operation:
                if when is None or when(payload):
                    raise RuntimeError(message)

    def count(self, table_name: str, operation: str) -> int:
        return sum(1 for name, op, _ in self.calls if name == table_name and op == operation)


class StubInsightService:
    """Returns a fixed insight and remembers what it was asked about."""

    def __init__(self, text: str = 'Nice work today.', mood: str = 'positive'):
        self.text = text
        self.mood = mood
        self.requested: List[str] = []

    def generate(self, entry):
        self.requested.append(entry.id)
        return Insight(self.text, self.mood)
