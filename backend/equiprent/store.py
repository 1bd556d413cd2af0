# equiprent/store.py
"""Single-row lookups the access checks are built on.

The store connects as the service role, which row security does not apply to:
access decisions are made here from the real rows, and the request-scoped
statements that follow are re-checked by the storage policies.
"""
import logging
from typing import Any, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

SQL_ROLE = "select role::text as role from public.users where id = %s"

SQL_PROJECT = """
select id::text as id, created_by::text as created_by
from public.projects
where id = %s
"""

class PostgresAccessStore:
    """Read-only lookups by primary key. Never caches."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def _fetchone(self, query, params: tuple) -> Optional[dict[str, Any]]:
        try:
            with self.pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return cur.fetchone()
        except psycopg.DataError as e:
            # e.g. an id that is not a uuid: nothing can match it
            logger.info("Lookup rejected by store: %s", e)
            return None
        except psycopg.Error as e:
            logger.error("Access lookup failed: %s", e)
            raise StoreUnavailable() from e

    def get_role(self, principal_id: str) -> Optional[str]:
        row = self._fetchone(SQL_ROLE, (str(principal_id),))
        return row["role"] if row else None

    def get_project(self, project_id: str) -> Optional[dict[str, Any]]:
        return self._fetchone(SQL_PROJECT, (str(project_id),))

    def get_parent_id(self, table: str, parent_column: str, resource_id: str) -> Optional[str]:
        query = sql.SQL("select {col}::text as parent_id from {tbl} where id = %s").format(
            col=sql.Identifier(parent_column),
            tbl=sql.Identifier("public", table),
        )
        row = self._fetchone(query, (str(resource_id),))
        return row["parent_id"] if row else None
