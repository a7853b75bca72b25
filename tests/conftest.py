"""Shared test fixtures.

Provides:
- fake_supabase: in-memory stand-in for the supabase-py client (query builder + auth admin)
- seed_data: workspaces, profiles, memberships and connections in fake_supabase
- client: FastAPI test client with the Supabase dependencies overridden
"""

import re
import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from synapse.config import settings
from synapse.database.supabase_client import get_supabase, get_service_supabase


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Implements the subset of the PostgREST builder the services use."""

    _EMBED_RE = re.compile(r"(\w+)\(([^)]*)\)")

    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self._negate = False
        self._limit = None
        self._offset = 0
        self._order = None
        self._single = None

    # builders

    def select(self, columns="*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def _add(self, predicate):
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    def eq(self, col, value):
        return self._add(lambda row: row.get(col) == value)

    def neq(self, col, value):
        return self._add(lambda row: row.get(col) != value)

    def in_(self, col, values):
        return self._add(lambda row: row.get(col) in values)

    def is_(self, col, value):
        if value == "null":
            return self._add(lambda row: row.get(col) is None)
        return self._add(lambda row: row.get(col) is value)

    def ilike(self, col, pattern):
        regex = re.compile("^" + re.escape(pattern).replace("%", ".*") + "$", re.IGNORECASE)
        return self._add(lambda row: bool(regex.match(row.get(col) or "")))

    def limit(self, n):
        self._limit = n
        return self

    def range(self, start, end):
        self._offset = start
        self._limit = end - start + 1
        return self

    def order(self, col, desc=False):
        self._order = (col, desc)
        return self

    def maybe_single(self):
        self._single = "maybe"
        return self

    def single(self):
        self._single = "single"
        return self

    # execution

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def _embed(self, row):
        row = dict(row)
        for name, _cols in self._EMBED_RE.findall(self.columns):
            fk = name.rstrip("s") + "_id"
            target = next((r for r in self.db.rows(name) if r.get("id") == row.get(fk)), None)
            row[name] = dict(target) if target else None
        return row

    def execute(self):
        error = self.db.failures.get((self.table_name, self.op))
        if error is not None:
            raise error
        self.db.calls.append((self.table_name, self.op, self.payload))
        rows = self.db.rows(self.table_name)

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                row = {"id": str(uuid.uuid4()), **item}
                rows.append(row)
                created.append(dict(row))
            return FakeResponse(created)

        if self.op == "upsert":
            key = self.on_conflict or "id"
            existing = next((r for r in rows if r.get(key) == self.payload.get(key)), None)
            if existing:
                existing.update(self.payload)
                return FakeResponse([dict(existing)])
            row = {"id": str(uuid.uuid4()), **self.payload}
            rows.append(row)
            return FakeResponse([dict(row)])

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.op == "delete":
            for r in matched:
                rows.remove(r)
            return FakeResponse([dict(r) for r in matched])

        if self._order:
            col, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(col) or "", reverse=desc)
        matched = matched[self._offset:]
        if self._limit is not None:
            matched = matched[:self._limit]
        # PostgREST max-rows caps every response regardless of the requested range
        if self.db.max_rows is not None:
            matched = matched[:self.db.max_rows]
        data = [self._embed(r) for r in matched]

        if self._single == "maybe":
            return FakeResponse(data[0]) if data else None
        if self._single == "single":
            if len(data) != 1:
                raise RuntimeError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(data[0])
        return FakeResponse(data)


class FakeAuthAdmin:
    def __init__(self, db):
        self.db = db

    def list_users(self, page=1, per_page=50):
        start = (page - 1) * per_page
        return self.db.users[start:start + per_page]

    def create_user(self, attributes):
        if self.db.create_user_error:
            raise self.db.create_user_error
        user = make_user(attributes["email"], user_metadata=attributes.get("user_metadata"))
        self.db.users.append(user)
        self.db.created_user_attributes.append(attributes)
        # signup trigger
        self.db.rows("profiles").append({
            "id": str(uuid.uuid4()),
            "user_id": user.id,
            "email": user.email,
            "current_workspace_id": None,
        })
        return SimpleNamespace(user=user)

    def delete_user(self, user_id):
        self.db.users = [u for u in self.db.users if u.id != user_id]


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.admin = FakeAuthAdmin(db)

    def get_user(self, jwt=None):
        user = self.db.tokens.get(jwt)
        if user is None:
            raise RuntimeError("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.max_rows = None
        self.calls = []
        self.users = []
        self.tokens = {}
        self.created_user_attributes = []
        self.create_user_error = None
        self.auth = FakeAuth(self)

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def table(self, name):
        return FakeQuery(self, name)

    def calls_for(self, table, op):
        return [payload for t, o, payload in self.calls if t == table and o == op]


def make_user(email, user_id=None, user_metadata=None):
    return SimpleNamespace(
        id=user_id or str(uuid.uuid4()),
        email=email,
        user_metadata=user_metadata or {},
        app_metadata={},
    )


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def seed_data(fake_supabase):
    """Two workspaces, three users; carol is missing her membership.

    Returns a dict of ids for easy access in tests.
    """
    db = fake_supabase
    alice = make_user("alice@acme.com", "user-alice")
    bob = make_user("bob@acme.com", "user-bob")
    carol = make_user("carol@beta.com", "user-carol")
    db.users.extend([alice, bob, carol])
    db.tokens.update({"token-alice": alice, "token-bob": bob, "token-carol": carol})

    db.tables["workspaces"] = [
        {"id": "ws-acme", "name": "Acme", "owner_id": "user-alice", "instance_name": "acme-main"},
        {"id": "ws-beta", "name": "Beta", "owner_id": "user-carol", "instance_name": None},
    ]
    db.tables["profiles"] = [
        {"id": "prof-alice", "user_id": "user-alice", "email": "alice@acme.com", "current_workspace_id": "ws-acme"},
        {"id": "prof-bob", "user_id": "user-bob", "email": "bob@acme.com", "current_workspace_id": "ws-acme"},
        {"id": "prof-carol", "user_id": "user-carol", "email": "carol@beta.com", "current_workspace_id": "ws-beta"},
        {"id": "prof-dave", "user_id": "user-dave", "email": "dave@nowhere.com", "current_workspace_id": None},
    ]
    db.tables["workspace_members"] = [
        {"id": "m-1", "workspace_id": "ws-acme", "user_id": "user-alice", "role": "owner"},
        {"id": "m-2", "workspace_id": "ws-acme", "user_id": "user-bob", "role": "seller"},
    ]
    db.tables["whatsapp_connections"] = [
        {"id": "c-1", "workspace_id": "ws-acme", "name": "Main", "provider": "evolution",
         "instance_name": "acme-main", "status": "connected", "created_at": "2025-01-01T00:00:00Z"},
        {"id": "c-2", "workspace_id": "ws-acme", "name": "Meta", "provider": "meta",
         "instance_name": None, "status": "pending", "created_at": "2025-02-01T00:00:00Z"},
        {"id": "c-3", "workspace_id": "ws-beta", "name": "Beta line", "provider": "evolution",
         "instance_name": None, "status": "pending", "created_at": "2025-03-01T00:00:00Z"},
    ]
    return {
        "acme_id": "ws-acme",
        "beta_id": "ws-beta",
        "alice_id": "user-alice",
        "bob_id": "user-bob",
        "carol_id": "user-carol",
    }


@pytest.fixture
def app(fake_supabase):
    from synapse.main import app

    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_service_supabase] = lambda: fake_supabase
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def override_settings(monkeypatch):
    """Set attributes on the global settings for one test."""

    def _set(**values):
        for key, value in values.items():
            monkeypatch.setattr(settings, key, value)

    return _set
