# equiprent/security/rls.py
"""
Row-security policy set for the storage engine.

Nothing here is hand-written SQL logic: the helper functions and the
per-table policies are rendered from PROJECT_ACCESS, HIERARCHY and
ACTION_POLICY, the same definitions the application checks evaluate.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from psycopg_pool import ConnectionPool

from ..db import DB_RLS_ROLE, PRINCIPAL_SETTING
from .authz import ACTION_POLICY, HIERARCHY, resolver_for
from .predicates import (
    PROJECT_ACCESS, AnyOf, CanAccess, EvalContext, HasRole, IsAuthenticated, IsOwner, Predicate,
)

logger = logging.getLogger(__name__)

COMMANDS = ("SELECT", "INSERT", "UPDATE", "DELETE")

@dataclass(frozen=True)
class Policy:
    name: str
    table: str
    command: str
    using: Optional[Predicate] = None
    with_check: Optional[Predicate] = None

    def allows(self, store, principal_id: str, row) -> bool:
        """Evaluate the policy in-process against `row`, as the engine would."""
        ctx = EvalContext(store=store, principal_id=principal_id, row=row,
                          resolver=resolver_for(store, principal_id))
        checks = [p for p in (self.using, self.with_check) if p is not None]
        return bool(checks) and all(p.evaluate(ctx) for p in checks)

def _role_gate(action: str) -> HasRole:
    return HasRole(ACTION_POLICY[action])

def _hierarchy_policies() -> list[Policy]:
    out: list[Policy] = []
    for resource, level in HIERARCHY.items():
        if level.parent is None:
            visible = PROJECT_ACCESS
        else:
            visible = CanAccess(level.parent, level.parent_column)
        out.append(Policy(f"{level.table}_select", level.table, "SELECT", using=visible))

        if resource == "project":
            # owners keep editing their own projects; creation and deletion are role-gated
            out += [
                Policy("projects_insert", "projects", "INSERT", with_check=_role_gate("project:create")),
                Policy("projects_update", "projects", "UPDATE", using=PROJECT_ACCESS, with_check=PROJECT_ACCESS),
                Policy("projects_delete", "projects", "DELETE", using=_role_gate("project:delete")),
            ]
            continue

        gate = _role_gate(f"{resource}:manage")
        out += [
            Policy(f"{level.table}_insert", level.table, "INSERT", with_check=gate),
            Policy(f"{level.table}_update", level.table, "UPDATE", using=gate, with_check=gate),
            Policy(f"{level.table}_delete", level.table, "DELETE", using=gate),
        ]
    return out

def build_policies() -> list[Policy]:
    vendor_gate = _role_gate("vendor:manage")
    user_admin = _role_gate("user:manage")
    policies = [
        Policy("users_select", "users", "SELECT", using=AnyOf(IsOwner("id"), user_admin)),
        Policy("users_update", "users", "UPDATE", using=user_admin, with_check=user_admin),
        Policy("vendors_select", "vendors", "SELECT", using=IsAuthenticated()),
        Policy("vendors_insert", "vendors", "INSERT", with_check=vendor_gate),
        Policy("vendors_update", "vendors", "UPDATE", using=vendor_gate, with_check=vendor_gate),
        Policy("vendors_delete", "vendors", "DELETE", using=vendor_gate),
    ]
    policies += _hierarchy_policies()
    policies += [
        Policy("audit_logs_select", "audit_logs", "SELECT", using=_role_gate("audit_log:read")),
        # a principal may only write audit rows about itself
        Policy("audit_logs_insert", "audit_logs", "INSERT", with_check=IsOwner("user_id")),
    ]
    return policies

POLICIES: list[Policy] = build_policies()

def policies_for(table: str, command: str) -> list[Policy]:
    return [p for p in POLICIES if p.table == table and p.command == command]

# ---------- SQL rendering ----------

def _depth(resource: str) -> int:
    level = HIERARCHY[resource]
    return 0 if level.parent is None else 1 + _depth(level.parent)

def _function(name: str, args: str, body: str) -> str:
    return (
        f"CREATE OR REPLACE FUNCTION authz.{name}({args})\n"
        f"RETURNS boolean\n"
        f"LANGUAGE sql STABLE SECURITY DEFINER\n"
        f"SET search_path = pg_catalog, public\n"
        f"AS $$\n  {body}\n$$;"
    )

def render_functions() -> list[str]:
    stmts = [
        "CREATE SCHEMA IF NOT EXISTS authz;",
        "CREATE OR REPLACE FUNCTION authz.current_principal()\n"
        "RETURNS uuid\n"
        "LANGUAGE sql STABLE\n"
        f"AS $$\n  SELECT NULLIF(current_setting('{PRINCIPAL_SETTING}', true), '')::uuid\n$$;",
        _function(
            "is_authenticated_user", "",
            "SELECT EXISTS (SELECT 1 FROM public.users WHERE id = authz.current_principal())",
        ),
        _function(
            "has_any_role", "required_roles text[]",
            "SELECT EXISTS (SELECT 1 FROM public.users "
            "WHERE id = authz.current_principal() AND role::text = ANY(required_roles))",
        ),
    ]
    # parents first: a sql function body must reference functions that exist
    for resource in sorted(HIERARCHY, key=_depth):
        level = HIERARCHY[resource]
        if level.parent is None:
            rule = PROJECT_ACCESS.to_sql("t")
        else:
            rule = CanAccess(level.parent, level.parent_column).to_sql("t")
        stmts.append(_function(
            f"can_access_{resource}", "target uuid",
            f"SELECT EXISTS (SELECT 1 FROM public.{level.table} t WHERE t.id = target AND {rule})",
        ))
    return stmts

def render_policy(policy: Policy) -> str:
    sql = f'CREATE POLICY "{policy.name}" ON public.{policy.table}\nFOR {policy.command}\nTO {DB_RLS_ROLE}'
    if policy.using is not None:
        sql += f"\nUSING ({policy.using.to_sql()})"
    if policy.with_check is not None:
        sql += f"\nWITH CHECK ({policy.with_check.to_sql()})"
    return sql + ";"

def _grants(tables: list[str]) -> list[str]:
    stmts = [
        f"GRANT USAGE ON SCHEMA authz TO {DB_RLS_ROLE};",
        f"GRANT EXECUTE ON ALL FUNCTIONS IN SCHEMA authz TO {DB_RLS_ROLE};",
    ]
    for table in tables:
        commands = sorted({p.command for p in POLICIES if p.table == table}, key=COMMANDS.index)
        stmts.append(f"GRANT {', '.join(commands)} ON public.{table} TO {DB_RLS_ROLE};")
    return stmts

def render_policy_set() -> str:
    """Full, re-runnable DDL: helper functions, RLS switches, policies, grants."""
    tables = list(dict.fromkeys(p.table for p in POLICIES))
    stmts = render_functions()
    stmts += [f"ALTER TABLE public.{t} ENABLE ROW LEVEL SECURITY;" for t in tables]
    for p in POLICIES:
        stmts.append(f'DROP POLICY IF EXISTS "{p.name}" ON public.{p.table};')
        stmts.append(render_policy(p))
    stmts += _grants(tables)
    return "\n\n".join(stmts) + "\n"

def apply_policy_set(pool: ConnectionPool) -> None:
    """Install the policy set in one transaction."""
    ddl = render_policy_set()
    with pool.connection() as conn:
        with conn.transaction():
            conn.execute(ddl)
    logger.info("Applied %d row-security policies", len(POLICIES))
