# equiprent/security/predicates.py
"""
Predicate tree shared by both authorization layers.

The application evaluates a tree against rows fetched from the store; the
row-security layer gets the same tree rendered to SQL. Keeping one definition
means a rule change (say, a new privileged role) reaches both layers at once.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .roles import PRIVILEGED_ROLES, Role, has_any_role, is_authenticated_user

# SQL spelling of the calling principal inside the storage engine.
CURRENT_PRINCIPAL_SQL = "authz.current_principal()"

@dataclass
class EvalContext:
    """Everything a predicate may look at. `row` is the row being judged."""
    store: Any
    principal_id: str
    row: Mapping[str, Any] = field(default_factory=dict)
    # (resource, resource_id) -> bool, used by CanAccess
    resolver: Optional[Callable[[str, Any], bool]] = None

def _column(alias: Optional[str], name: str) -> str:
    return f"{alias}.{name}" if alias else name

class Predicate:
    def evaluate(self, ctx: EvalContext) -> bool:
        raise NotImplementedError

    def to_sql(self, alias: Optional[str] = None) -> str:
        raise NotImplementedError

    def __or__(self, other: "Predicate") -> "AnyOf":
        return AnyOf(self, other)

    def __and__(self, other: "Predicate") -> "AllOf":
        return AllOf(self, other)

@dataclass(frozen=True, init=False)
class HasRole(Predicate):
    roles: tuple[Role, ...]

    def __init__(self, roles):
        # stable order keeps the rendered SQL deterministic
        ordered = tuple(sorted({Role(r) for r in roles}, key=lambda r: r.value))
        if not ordered:
            raise ValueError("HasRole needs at least one role")
        object.__setattr__(self, "roles", ordered)

    def evaluate(self, ctx: EvalContext) -> bool:
        return has_any_role(ctx.store, ctx.principal_id, self.roles)

    def to_sql(self, alias: Optional[str] = None) -> str:
        literals = ", ".join(f"'{r.value}'" for r in self.roles)
        return f"authz.has_any_role(ARRAY[{literals}]::text[])"

@dataclass(frozen=True)
class IsOwner(Predicate):
    """The row's `column` holds the calling principal's id."""
    column: str = "created_by"

    def evaluate(self, ctx: EvalContext) -> bool:
        owner = ctx.row.get(self.column)
        if owner is None or ctx.principal_id is None:
            return False
        return str(owner) == str(ctx.principal_id)

    def to_sql(self, alias: Optional[str] = None) -> str:
        return f"{_column(alias, self.column)} = {CURRENT_PRINCIPAL_SQL}"

@dataclass(frozen=True)
class IsAuthenticated(Predicate):
    """The principal exists in the users table."""

    def evaluate(self, ctx: EvalContext) -> bool:
        return is_authenticated_user(ctx.store, ctx.principal_id)

    def to_sql(self, alias: Optional[str] = None) -> str:
        return "authz.is_authenticated_user()"

@dataclass(frozen=True)
class CanAccess(Predicate):
    """Access to the resource referenced by `column` (walks up the hierarchy)."""
    resource: str
    column: str

    def evaluate(self, ctx: EvalContext) -> bool:
        target = ctx.row.get(self.column)
        if target is None or ctx.resolver is None:
            return False
        return ctx.resolver(self.resource, target)

    def to_sql(self, alias: Optional[str] = None) -> str:
        return f"authz.can_access_{self.resource}({_column(alias, self.column)})"

@dataclass(frozen=True, init=False)
class AnyOf(Predicate):
    operands: tuple[Predicate, ...]

    def __init__(self, *operands: Predicate):
        if not operands:
            raise ValueError("AnyOf needs at least one operand")
        object.__setattr__(self, "operands", tuple(operands))

    def evaluate(self, ctx: EvalContext) -> bool:
        return any(p.evaluate(ctx) for p in self.operands)

    def to_sql(self, alias: Optional[str] = None) -> str:
        return "(" + " OR ".join(p.to_sql(alias) for p in self.operands) + ")"

@dataclass(frozen=True, init=False)
class AllOf(Predicate):
    operands: tuple[Predicate, ...]

    def __init__(self, *operands: Predicate):
        if not operands:
            raise ValueError("AllOf needs at least one operand")
        object.__setattr__(self, "operands", tuple(operands))

    def evaluate(self, ctx: EvalContext) -> bool:
        return all(p.evaluate(ctx) for p in self.operands)

    def to_sql(self, alias: Optional[str] = None) -> str:
        return "(" + " AND ".join(p.to_sql(alias) for p in self.operands) + ")"

# A known principal who is an admin or manager, or who created the project.
PROJECT_ACCESS = IsAuthenticated() & (HasRole(PRIVILEGED_ROLES) | IsOwner("created_by"))
