import datetime as dt
from contextlib import contextmanager
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from equiprent.deps import get_store
from equiprent.errors import StoreUnavailable
from equiprent.main import app
from equiprent.security import auth

SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789"

# principals
U1 = "00000000-0000-4000-8000-0000000000a1"   # user, creates P1
U2 = "00000000-0000-4000-8000-0000000000a2"   # user, owns nothing
M1 = "00000000-0000-4000-8000-0000000000b1"   # manager
A1 = "00000000-0000-4000-8000-0000000000c1"   # admin
GHOST = "00000000-0000-4000-8000-0000000000ff"  # valid token, no users row

# P1 -> PO1 -> D1 -> I1, PO1 -> POI1
P1 = "10000000-0000-4000-8000-000000000001"
PO1 = "20000000-0000-4000-8000-000000000001"
POI1 = "25000000-0000-4000-8000-000000000001"
D1 = "30000000-0000-4000-8000-000000000001"
I1 = "40000000-0000-4000-8000-000000000001"

# P2 -> PO2 -> D2 -> I2, created by the manager
P2 = "10000000-0000-4000-8000-000000000002"
PO2 = "20000000-0000-4000-8000-000000000002"
D2 = "30000000-0000-4000-8000-000000000002"
I2 = "40000000-0000-4000-8000-000000000002"

MISSING = "99999999-0000-4000-8000-000000000000"


class FakeStore:
    """In-memory stand-in for PostgresAccessStore. Records every lookup."""

    def __init__(self):
        self.roles = {}
        self.projects = {}
        self.tables = {}
        self.calls = []
        self.unavailable = False

    def _lookup(self, name, *args):
        self.calls.append((name,) + args)
        if self.unavailable:
            raise StoreUnavailable()

    def add_project(self, project_id, created_by):
        self.projects[project_id] = created_by

    def add_row(self, table, row_id, **columns):
        self.tables.setdefault(table, {})[row_id] = dict(columns, id=row_id)

    def get_role(self, principal_id):
        self._lookup("get_role", principal_id)
        return self.roles.get(str(principal_id))

    def get_project(self, project_id):
        self._lookup("get_project", project_id)
        owner = self.projects.get(str(project_id))
        if owner is None:
            return None
        return {"id": str(project_id), "created_by": owner}

    def get_parent_id(self, table, parent_column, resource_id):
        self._lookup("get_parent_id", table, resource_id)
        row = self.tables.get(table, {}).get(str(resource_id))
        return row.get(parent_column) if row else None


@pytest.fixture
def store():
    s = FakeStore()
    s.roles.update({U1: "user", U2: "user", M1: "manager", A1: "admin"})
    s.add_project(P1, U1)
    s.add_row("purchase_orders", PO1, project_id=P1)
    s.add_row("po_items", POI1, purchase_order_id=PO1)
    s.add_row("delivery_notes", D1, purchase_order_id=PO1)
    s.add_row("dn_items", I1, delivery_note_id=D1)
    s.add_project(P2, M1)
    s.add_row("purchase_orders", PO2, project_id=P2)
    s.add_row("delivery_notes", D2, purchase_order_id=PO2)
    s.add_row("dn_items", I2, delivery_note_id=D2)
    return s


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr(auth, "JWT_SIGNING_KEY", SIGNING_KEY)
    monkeypatch.setattr(auth, "JWT_ALG", "HS256")
    monkeypatch.setattr(auth, "JWT_AUDIENCE", "authenticated")
    monkeypatch.setattr(auth, "ISSUER", "")


def make_token(sub=U1, key=SIGNING_KEY, expires_in=300, **claims):
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": sub,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(seconds=expires_in)).timestamp()),
    }
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, key, algorithm="HS256")


def bearer(sub):
    return {"Authorization": f"Bearer {make_token(sub)}"}


def fake_transaction(cursor):
    """Replacement for db.principal_transaction that yields `cursor`."""
    @contextmanager
    def _tx(principal_id):
        cursor.principal_id = principal_id
        yield cursor
    return _tx


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
