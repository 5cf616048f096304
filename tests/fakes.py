"""In-memory stand-ins for the Supabase client used by the services.

FakeSupabase implements the subset of the postgrest query builder the code
calls (select/insert/update/delete/upsert, eq/neq/in_/gte/lte/gt/ilike/is_/or_,
not_, order, limit, range, maybe_single, single). Related rows requested with
embedded selects (``projects(nome)``, ``profiles(...)``) are not joined: tests
store them directly on the row under the relation name.
"""
import copy
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional


class FakeResult:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


def _ilike(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in str(pattern).split("%")) + "$"
    return re.match(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _compare(value: Any, other: Any, op: Callable[[Any, Any], bool]) -> bool:
    if value is None or other is None:
        return False
    if isinstance(value, (int, float)) and isinstance(other, (int, float)):
        return op(value, other)
    return op(str(value), str(other))


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._negate_next = False
        self._orders: List[tuple] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple] = None
        self._single: Optional[str] = None
        self._count: Optional[str] = None
        self._on_conflict: Optional[str] = None

    # Operations

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.operation = "select"
        self._count = count
        return self

    def insert(self, data):
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.operation = "update"
        self.payload = data
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def upsert(self, data, on_conflict: Optional[str] = None):
        self.operation = "upsert"
        self.payload = data
        self._on_conflict = on_conflict
        return self

    # Filters

    def _add(self, predicate: Callable[[Dict[str, Any]], bool]):
        if self._negate_next:
            self._negate_next = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    @property
    def not_(self):
        self._negate_next = True
        return self

    def eq(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any):
        return self._add(lambda row: row.get(column) != value)

    def in_(self, column: str, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def gte(self, column: str, value: Any):
        return self._add(lambda row: _compare(row.get(column), value, lambda a, b: a >= b))

    def lte(self, column: str, value: Any):
        return self._add(lambda row: _compare(row.get(column), value, lambda a, b: a <= b))

    def gt(self, column: str, value: Any):
        return self._add(lambda row: _compare(row.get(column), value, lambda a, b: a > b))

    def lt(self, column: str, value: Any):
        return self._add(lambda row: _compare(row.get(column), value, lambda a, b: a < b))

    def ilike(self, column: str, pattern: str):
        return self._add(lambda row: _ilike(row.get(column), pattern))

    def is_(self, column: str, value: Any):
        if value in (None, "null"):
            return self._add(lambda row: row.get(column) is None)
        return self._add(lambda row: row.get(column) is value)

    def or_(self, expression: str):
        clauses = []
        for clause in expression.split(","):
            column, op, value = clause.split(".", 2)
            clauses.append((column, op, value))

        def predicate(row):
            for column, op, value in clauses:
                if op == "ilike" and _ilike(row.get(column), value):
                    return True
                if op == "eq" and str(row.get(column)) == value:
                    return True
            return False
        return self._add(predicate)

    # Modifiers

    def order(self, column: str, desc: bool = False):
        self._orders.append((column, desc))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def range(self, start: int, end: int):
        self._range = (start, end)
        return self

    def maybe_single(self):
        self._single = "maybe"
        return self

    def single(self):
        self._single = "single"
        return self

    # Execution

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self) -> Optional[FakeResult]:
        error = self.db.errors.get((self.table_name, self.operation))
        if error is not None:
            raise error
        self.db.calls.append((self.table_name, self.operation))
        return getattr(self, f"_execute_{self.operation}")()

    def _execute_select(self):
        rows = self._matching()
        for column, desc in reversed(self._orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else ""), reverse=desc)
        count = len(rows) if self._count else None
        if self._range:
            rows = rows[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        rows = copy.deepcopy(rows)
        if self._single == "maybe":
            return FakeResult(rows[0], count) if rows else None
        if self._single == "single":
            if len(rows) != 1:
                raise Exception("JSON object requested, multiple (or no) rows returned")
            return FakeResult(rows[0], count)
        return FakeResult(rows, count)

    def _new_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(data)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("criado_em", datetime.now(timezone.utc).isoformat())
        return row

    def _execute_insert(self):
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        rows = [self._new_row(item) for item in items]
        self.db.tables.setdefault(self.table_name, []).extend(rows)
        return FakeResult(copy.deepcopy(rows))

    def _execute_update(self):
        rows = self._matching()
        for row in rows:
            row.update(self.payload)
        return FakeResult(copy.deepcopy(rows))

    def _execute_delete(self):
        rows = self._matching()
        table = self.db.tables.setdefault(self.table_name, [])
        self.db.tables[self.table_name] = [row for row in table if not any(row is r for r in rows)]
        return FakeResult(copy.deepcopy(rows))

    def _execute_upsert(self):
        key = self._on_conflict or self.db.primary_keys.get(self.table_name, "id")
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        table = self.db.tables.setdefault(self.table_name, [])
        saved = []
        for item in items:
            existing = next((row for row in table if row.get(key) == item.get(key)), None)
            if existing is not None:
                existing.update(item)
                saved.append(existing)
            else:
                row = self._new_row(item)
                table.append(row)
                saved.append(row)
        return FakeResult(copy.deepcopy(saved))


class FakeBucket:
    def __init__(self, files: Dict[str, bytes]):
        self.files = files

    def upload(self, path: str, content: bytes, file_options: Optional[Dict[str, str]] = None):
        self.files[path] = content
        return {"path": path}

    def download(self, path: str) -> bytes:
        if path not in self.files:
            raise Exception(f"Object not found: {path}")
        return self.files[path]

    def remove(self, paths: List[str]):
        for path in paths:
            self.files.pop(path, None)
        return [{"name": p} for p in paths]


class FakeStorage:
    def __init__(self):
        self.buckets: Dict[str, Dict[str, bytes]] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self.buckets.setdefault(bucket, {}))


class FakeAuth:
    def __init__(self):
        self.tokens: Dict[str, SimpleNamespace] = {}
        self.signed_out = 0

    def add_user(self, token: str, user_id: str, email: str, app_metadata: Optional[Dict[str, Any]] = None):
        self.tokens[token] = SimpleNamespace(
            id=user_id, email=email, user_metadata={}, app_metadata=app_metadata or {}
        )

    def get_user(self, jwt: Optional[str] = None):
        if jwt not in self.tokens:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self.tokens[jwt])

    def sign_up(self, credentials: Dict[str, Any]):
        user = SimpleNamespace(id=str(uuid.uuid4()), email=credentials["email"])
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        for token, user in self.tokens.items():
            if user.email == credentials["email"]:
                return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token))
        raise Exception("Invalid login credentials")

    def sign_out(self):
        self.signed_out += 1


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.errors: Dict[tuple, Exception] = {}
        self.primary_keys: Dict[str, str] = {"reminder_settings": "prioridade"}
        self.calls: List[tuple] = []
        self.storage = FakeStorage()
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def add(self, table: str, **row) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])
