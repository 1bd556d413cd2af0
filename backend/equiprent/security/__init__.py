# Re-export security primitives from a single namespace.
from .auth import IdentityResult, extract_bearer_token, resolve_identity, require_principal
from .roles import Role, PRIVILEGED_ROLES, has_any_role, is_authenticated_user
from .predicates import PROJECT_ACCESS
from .authz import (
    ACTION_POLICY, HIERARCHY,
    can_access, can_access_project, can_access_purchase_order, can_access_purchase_order_item,
    can_access_delivery_note, can_access_delivery_note_item,
    can_perform, require_access, require_action,
)

__all__ = [
    "IdentityResult", "extract_bearer_token", "resolve_identity", "require_principal",
    "Role", "PRIVILEGED_ROLES", "has_any_role", "is_authenticated_user",
    "PROJECT_ACCESS", "ACTION_POLICY", "HIERARCHY",
    "can_access", "can_access_project", "can_access_purchase_order", "can_access_purchase_order_item",
    "can_access_delivery_note", "can_access_delivery_note_item",
    "can_perform", "require_access", "require_action",
]
