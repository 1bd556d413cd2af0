# equiprent/security/roles.py
import logging
from enum import Enum
from typing import Iterable

from ..errors import StoreUnavailable

logger = logging.getLogger(__name__)

class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"

# Roles that see every project regardless of who created it.
PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.MANAGER})

def _current_role(store, principal_id: str) -> Role | None:
    """One read of the principal's role. Any failure reads as 'no role'."""
    try:
        raw = store.get_role(principal_id)
    except StoreUnavailable:
        logger.warning("Role lookup unavailable for principal %s", principal_id)
        return None
    if raw is None:
        return None
    try:
        return Role(raw)
    except ValueError:
        logger.warning("Principal %s has unknown role %r", principal_id, raw)
        return None

def has_any_role(store, principal_id: str, roles: Iterable[Role | str]) -> bool:
    """
    True if the principal's current role is one of `roles`.
    Fails closed: missing principal, unknown role or store failure -> False.
    """
    required = frozenset(Role(r) for r in roles)
    if not required:
        raise ValueError("has_any_role needs at least one role")
    role = _current_role(store, principal_id)
    return role is not None and role in required

def is_authenticated_user(store, principal_id: str) -> bool:
    """The principal has a users row (with a recognised role)."""
    return _current_role(store, principal_id) is not None
