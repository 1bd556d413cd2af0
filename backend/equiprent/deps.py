# equiprent/deps.py
from .db import pool
from .security.auth import require_principal
from .store import PostgresAccessStore

# Single store over the shared pool; overridden in tests.
_store = PostgresAccessStore(pool)

def get_store() -> PostgresAccessStore:
    return _store

AUTH_DEP = require_principal
