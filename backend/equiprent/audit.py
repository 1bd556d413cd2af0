# equiprent/audit.py
import logging
from typing import Any, Optional

from psycopg.types.json import Json

from .db import principal_transaction

logger = logging.getLogger(__name__)

SQL_AUDIT = """
insert into public.audit_logs
  (user_id, action, table_name, record_id, old_values, new_values, ip_address, user_agent)
values (%s, %s, %s, %s, %s, %s, %s, %s)
"""

def log_event(
    principal_id: str,
    action: str,
    table_name: str,
    record_id: str,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> bool:
    """
    Record who did what, in its own transaction, after the mutation it
    describes has committed. Best-effort: never raises.
    """
    try:
        with principal_transaction(principal_id) as cur:
            cur.execute(SQL_AUDIT, (
                principal_id,
                action,
                table_name,
                str(record_id),
                Json(old_values) if old_values is not None else None,
                Json(new_values) if new_values is not None else None,
                client_ip,
                user_agent,
            ))
        return True
    except Exception:
        logger.exception("Audit write failed: %s %s/%s by %s", action, table_name, record_id, principal_id)
        return False
