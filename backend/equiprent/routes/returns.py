# equiprent/routes/returns.py
import datetime as dt
import logging

from fastapi import APIRouter, Depends, Request

from equiprent.audit import log_event
from equiprent.db import principal_transaction
from equiprent.deps import AUTH_DEP, get_store
from equiprent.errors import NotFound
from equiprent.models import ReturnIn, ReturnOut
from equiprent.security.authz import require_access, require_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/returns", tags=["returns"])

FULLY_RETURNED = "fully_returned"
PARTIAL_RETURN = "partial_return"

SQL_LOCK_ITEM = """
select returned_quantity, delivered_quantity, status::text as status
from public.dn_items
where id = %s
for update
"""

SQL_UPDATE_ITEM = """
update public.dn_items
set returned_quantity = %s, returned_at = %s, status = %s::dn_item_status
where id = %s
"""

def return_status(returned_quantity: int, delivered_quantity: int) -> str:
    """Item status after a return brings the total returned to `returned_quantity`."""
    return FULLY_RETURNED if returned_quantity >= delivered_quantity else PARTIAL_RETURN

@router.post("", response_model=ReturnOut)
def process_return(
    body: ReturnIn,
    request: Request,
    principal_id: str = Depends(AUTH_DEP),
    store=Depends(get_store),
):
    """Book returned units against a delivery-note item. Admins and managers only."""
    item_id = str(body.dn_item_id)
    require_action(store, principal_id, "return:process")
    require_access(store, principal_id, "delivery_note_item", item_id)

    with principal_transaction(principal_id) as cur:
        cur.execute(SQL_LOCK_ITEM, (item_id,))
        item = cur.fetchone()
        if not item:
            logger.warning("dn_item %s vanished or was hidden before return by %s", item_id, principal_id)
            raise NotFound()

        old_returned = item["returned_quantity"] or 0
        new_returned = old_returned + body.returned_quantity
        new_status = return_status(new_returned, item["delivered_quantity"])
        returned_at = dt.datetime.combine(body.return_date, dt.time.min, tzinfo=dt.timezone.utc)
        cur.execute(SQL_UPDATE_ITEM, (new_returned, returned_at, new_status, item_id))

    logger.info("Return processed: dn_item=%s +%d -> %s by %s", item_id, body.returned_quantity, new_status, principal_id)

    # Best-effort; the return above is already committed.
    log_event(
        principal_id,
        "RETURN_PROCESSED",
        "dn_items",
        item_id,
        old_values={"returned_quantity": old_returned, "status": item["status"]},
        new_values={"returned_quantity": new_returned, "status": new_status},
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return {"new_status": new_status, "new_returned_quantity": new_returned}
