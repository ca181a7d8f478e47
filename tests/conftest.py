"""
Shared fixtures: an in-memory stand-in for the Supabase client.

FakeSupabase understands the slice of the PostgREST query builder the
services use (select/insert/update/delete, eq/in_/ilike/range filters,
or_ expressions, order, range, limit, exact counts) plus rpc() with
pluggable handlers. Embedded relations in select strings are ignored and
whole rows come back.
"""

import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

from menswear_ops.models import AuthUser
from menswear_ops.services import (
    AdminService,
    AuthService,
    CustomerService,
    DashboardService,
    GarmentService,
    OrderService,
)
from menswear_ops.session import SessionContext, SessionStore


def api_error(message: str) -> APIError:
    return APIError({"message": message, "code": "500", "hint": None, "details": None})


def _split_top_level(expression: str) -> List[str]:
    parts, depth, current = [], 0, ""
    quoted = escaped = False
    for char in expression:
        if quoted:
            current += char
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                quoted = False
            continue
        if char == '"':
            quoted = True
        elif char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        parts.append(current)
    return parts


def _like(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    regex = "".join(".*" if c == "%" else "." if c == "_" else re.escape(c) for c in pattern)
    return re.fullmatch(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _compare(op: str, value: Any, target: Any) -> bool:
    if op == "eq":
        return value == target or (value is not None and str(value) == str(target))
    if op == "neq":
        return value != target
    if op == "ilike":
        return _like(value, target)
    if op == "in":
        return value in target or str(value) in [str(t) for t in target]
    if op == "is":
        return value is None if target in (None, "null") else value == target
    if value is None:
        return False
    if op == "lt":
        return str(value) < str(target)
    if op == "lte":
        return str(value) <= str(target)
    if op == "gt":
        return str(value) > str(target)
    if op == "gte":
        return str(value) >= str(target)
    raise ValueError(f"Unsupported operator {op}")


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        return re.sub(r'\\(.)', r'\1', raw[1:-1])
    return raw


def _or_matcher(expression: str) -> Callable[[Dict[str, Any]], bool]:
    def term_matcher(term: str) -> Callable[[Dict[str, Any]], bool]:
        term = term.strip()
        if term.startswith("and(") and term.endswith(")"):
            inner = [term_matcher(t) for t in _split_top_level(term[4:-1])]
            return lambda row: all(m(row) for m in inner)
        if term.startswith("or(") and term.endswith(")"):
            return _or_matcher(term[3:-1])
        column, op, raw = term.split(".", 2)
        target: Any = _unquote(raw)
        if op == "in":
            target = [v for v in raw.strip("()").split(",") if v]
        elif op == "is" and raw == "null":
            target = None
        return lambda row: _compare(op, row.get(column), target)

    matchers = [term_matcher(t) for t in _split_top_level(expression)]
    return lambda row: any(m(row) for m in matchers)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.count: Optional[str] = None
        self.head = False
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.matchers: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.range_bounds: Optional[tuple] = None
        self.limit_count: Optional[int] = None

    # builders
    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False):
        self.columns, self.count, self.head = columns, count, head
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def _filter(self, op: str, column: str, target: Any):
        self.filters.append((op, column, target))
        self.matchers.append(lambda row: _compare(op, row.get(column), target))
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value)

    def neq(self, column, value):
        return self._filter("neq", column, value)

    def in_(self, column, values):
        return self._filter("in", column, list(values))

    def ilike(self, column, pattern):
        return self._filter("ilike", column, pattern)

    def lt(self, column, value):
        return self._filter("lt", column, value)

    def lte(self, column, value):
        return self._filter("lte", column, value)

    def gt(self, column, value):
        return self._filter("gt", column, value)

    def gte(self, column, value):
        return self._filter("gte", column, value)

    def or_(self, expression: str):
        self.filters.append(("or", None, expression))
        self.matchers.append(_or_matcher(expression))
        return self

    def order(self, column: str, desc: bool = False, **kwargs):
        self.orders.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    def limit(self, count: int):
        self.limit_count = count
        return self

    # execution
    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(m(row) for m in self.matchers)]

    def execute(self):
        self.db.executed.append(self)
        failure = self.db.failures.get((self.table_name, self.action))
        if failure is not None:
            raise failure

        if self.action == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.insert_row(self.table_name, p) for p in payloads]
            return SimpleNamespace(data=inserted, count=None)

        if self.action == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                row["updated_at"] = self.db.now()
                updated.append(dict(row))
            return SimpleNamespace(data=updated, count=None)

        if self.action == "delete":
            doomed = self._matching()
            self.db.tables[self.table_name] = [r for r in self.db.tables[self.table_name] if r not in doomed]
            return SimpleNamespace(data=[dict(r) for r in doomed], count=None)

        rows = [dict(r) for r in self._matching()]
        # Postgres defaults: NULLS LAST ascending, NULLS FIRST descending
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                      reverse=desc)
        total = len(rows)
        if self.range_bounds is not None:
            start, end = self.range_bounds
            rows = rows[start:end + 1]
        if self.limit_count is not None:
            rows = rows[:self.limit_count]
        return SimpleNamespace(data=[] if self.head else rows, count=total if self.count else None)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise api_error(f"function {self.name} does not exist")
        return SimpleNamespace(data=handler(self.params), count=None)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.executed: List[FakeQuery] = []
        self.failures: Dict[tuple, Exception] = {}
        self.rpc_calls: List[tuple] = []
        self._order_sequence = 0
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "generate_order_number": self._next_order_number,
            "log_activity": lambda params: None,
        }

    @staticmethod
    def now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _next_order_number(self, params: Dict[str, Any]) -> str:
        self._order_sequence += 1
        return f"ORD-{self._order_sequence:04d}"

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def insert_row(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": str(uuid.uuid4()), "created_at": self.now(), **payload}
        # column defaults the real schema fills in
        if table == "member_sizes":
            row.setdefault("measured_at", row["created_at"])
        self.tables.setdefault(table, []).append(row)
        return dict(row)

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [self.insert_row(table, row) for row in rows]

    def fail(self, table: str, action: str, message: str = "boom") -> None:
        self.failures[(table, action)] = api_error(message)

    def activity(self) -> List[Dict[str, Any]]:
        return [params for name, params in self.rpc_calls if name == "log_activity"]


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def staff_user():
    return AuthUser(id="user-1", email="sam@example.co.uk", first_name="Sam", last_name="Taylor", role="staff")


@pytest.fixture
def admin_user():
    return AuthUser(id="admin-1", email="alex@example.co.uk", first_name="Alex", last_name="Reid", role="admin")


@pytest.fixture
def session(staff_user):
    return SessionContext(user=staff_user)


@pytest.fixture
def session_file(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def customer_service(db, session):
    return CustomerService(client=db, session=session)


@pytest.fixture
def order_service(db, session):
    return OrderService(client=db, session=session)


@pytest.fixture
def garment_service(db, session):
    return GarmentService(client=db, session=session)


@pytest.fixture
def dashboard_service(db, session):
    return DashboardService(client=db, session=session)


@pytest.fixture
def auth_service(db, session_file):
    return AuthService(client=db, session=SessionContext(store=session_file))


@pytest.fixture
def admin_service(db):
    return AdminService(client=db, session=SessionContext())
