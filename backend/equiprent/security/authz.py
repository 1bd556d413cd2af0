# equiprent/security/authz.py
"""
Imperative access checks, run by handlers before touching a resource.

Access below the project level is transitive: each level looks up its own
parent reference (one read), then asks the parent. The parent id always comes
from the freshly fetched row, never from the request. Every check fails
closed: missing rows and store failures deny.
"""
import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

from ..errors import Forbidden, StoreUnavailable
from .predicates import PROJECT_ACCESS, EvalContext
from .roles import PRIVILEGED_ROLES, Role, has_any_role

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Level:
    table: str
    parent_column: Optional[str] = None
    parent: Optional[str] = None

# resource -> where it lives and which resource owns it
HIERARCHY: dict[str, Level] = {
    "project":             Level("projects"),
    "purchase_order":      Level("purchase_orders", "project_id", "project"),
    "purchase_order_item": Level("po_items", "purchase_order_id", "purchase_order"),
    "delivery_note":       Level("delivery_notes", "purchase_order_id", "purchase_order"),
    "delivery_note_item":  Level("dn_items", "delivery_note_id", "delivery_note"),
}

# Role-gated mutations. Orthogonal to ownership: owning the project does not
# let a plain user perform these.
ACTION_POLICY: dict[str, frozenset[Role]] = {
    "return:process":             PRIVILEGED_ROLES,
    "project:create":             PRIVILEGED_ROLES,
    "project:delete":             PRIVILEGED_ROLES,
    "vendor:manage":              PRIVILEGED_ROLES,
    "purchase_order:manage":      PRIVILEGED_ROLES,
    "purchase_order_item:manage": PRIVILEGED_ROLES,
    "delivery_note:manage":       PRIVILEGED_ROLES,
    "delivery_note_item:manage":  PRIVILEGED_ROLES,
    "audit_log:read":             frozenset({Role.ADMIN}),
    "user:manage":                frozenset({Role.ADMIN}),
}

def can_access_project(store, principal_id: str, project_id) -> bool:
    try:
        project = store.get_project(project_id)
    except StoreUnavailable:
        logger.warning("Project lookup unavailable; denying %s on project %s", principal_id, project_id)
        return False
    if project is None:
        return False
    ctx = EvalContext(store=store, principal_id=principal_id, row=project)
    return PROJECT_ACCESS.evaluate(ctx)

def can_access(store, principal_id: str, resource: str, resource_id) -> bool:
    """Walk `resource_id` up to its project and decide there."""
    try:
        level = HIERARCHY[resource]
    except KeyError:
        raise ValueError(f"unknown resource type {resource!r}") from None

    if level.parent is None:
        return can_access_project(store, principal_id, resource_id)

    try:
        parent_id = store.get_parent_id(level.table, level.parent_column, resource_id)
    except StoreUnavailable:
        logger.warning("Parent lookup unavailable; denying %s on %s %s", principal_id, resource, resource_id)
        return False
    if parent_id is None:
        return False
    return can_access(store, principal_id, level.parent, parent_id)

def can_access_purchase_order(store, principal_id: str, purchase_order_id) -> bool:
    return can_access(store, principal_id, "purchase_order", purchase_order_id)

def can_access_purchase_order_item(store, principal_id: str, po_item_id) -> bool:
    return can_access(store, principal_id, "purchase_order_item", po_item_id)

def can_access_delivery_note(store, principal_id: str, delivery_note_id) -> bool:
    return can_access(store, principal_id, "delivery_note", delivery_note_id)

def can_access_delivery_note_item(store, principal_id: str, dn_item_id) -> bool:
    return can_access(store, principal_id, "delivery_note_item", dn_item_id)

def resolver_for(store, principal_id: str):
    """(resource, id) -> bool, bound to one principal; feeds CanAccess predicates."""
    return partial(can_access, store, principal_id)

def can_perform(store, principal_id: str, action: str) -> bool:
    roles = ACTION_POLICY.get(action)
    if roles is None:
        logger.warning("No policy for action %r; denying", action)
        return False
    return has_any_role(store, principal_id, roles)

def require_access(store, principal_id: str, resource: str, resource_id) -> None:
    """Raise Forbidden unless the principal may act on the resource."""
    if not can_access(store, principal_id, resource, resource_id):
        logger.info("Access denied: principal=%s %s=%s", principal_id, resource, resource_id)
        raise Forbidden()

def require_action(store, principal_id: str, action: str) -> None:
    """Raise Forbidden unless the principal's role allows `action`."""
    if not can_perform(store, principal_id, action):
        logger.info("Action denied: principal=%s action=%s", principal_id, action)
        raise Forbidden()
