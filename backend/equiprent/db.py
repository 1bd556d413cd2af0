# equiprent/db.py
import os
from contextlib import contextmanager
from typing import Iterator

from psycopg import Cursor, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

# Role assumed for request-scoped statements; row security applies to it.
DB_RLS_ROLE = os.getenv("DB_RLS_ROLE", "equiprent_authenticated")

# Transaction-local setting the storage-side predicates read the principal from.
PRINCIPAL_SETTING = "app.principal_id"

# Opened by the application lifespan (or the CLI), not at import.
pool = ConnectionPool(
    conninfo="",  # password and anything not below come from the PG* environment
    kwargs=dict(
        host=os.getenv("PGHOST", "postgres"),
        dbname=os.getenv("PGDATABASE", "postgres"),
        user=os.getenv("PGUSER", "equiprent_service"),
        sslmode=os.getenv("PGSSLMODE", "prefer"),
        sslrootcert=os.getenv("PGSSLROOTCERT"),
        sslcert=os.getenv("PGSSLCERT"),
        sslkey=os.getenv("PGSSLKEY"),
        connect_timeout=5,
    ),
    max_size=int(os.getenv("DB_POOL_MAX", "10")),
    timeout=10,
    open=False,
)

@contextmanager
def principal_transaction(principal_id: str) -> Iterator[Cursor]:
    """
    Yield a dict_row cursor inside a transaction running as DB_RLS_ROLE with
    app.principal_id set, so every statement is re-checked by row security.
    Commits on clean exit, rolls back on error.
    """
    with pool.connection() as conn:
        with conn.transaction():
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("SET LOCAL ROLE {}").format(sql.Identifier(DB_RLS_ROLE)))
                cur.execute("select set_config(%s, %s, true)", (PRINCIPAL_SETTING, str(principal_id)))
                yield cur
