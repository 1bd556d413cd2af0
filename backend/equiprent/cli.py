#!/usr/bin/env python3
# equiprent/cli.py
#
# Operator commands for the access-control layer.
#   equiprent verify-token --token "$TOKEN"   resolve a bearer token to a principal
#   equiprent policies                        print the row-security DDL
#   equiprent policies --apply                install it (PG* env vars pick the database)
#
# Exit codes: 0 on success, 1 on failure.

import argparse
import logging
import sys

from .db import pool
from .logging_config import setup_logging
from .security.auth import resolve_identity
from .security.rls import apply_policy_set, render_policy_set

logger = logging.getLogger(__name__)

def cmd_verify_token(args) -> int:
    token = args.token or sys.stdin.read().strip()
    if not token:
        print("ERR: no token provided (use --token or pipe via STDIN)", file=sys.stderr)
        return 1
    principal_id, error = resolve_identity(token)
    if error is not None:
        print("INVALID: token rejected (see log for the reason)", file=sys.stderr)
        return 1
    print("VALID")
    print(f"principal_id: {principal_id}")
    return 0

def cmd_policies(args) -> int:
    if not args.apply:
        sys.stdout.write(render_policy_set())
        return 0
    pool.open()
    try:
        apply_policy_set(pool)
    except Exception:
        logger.exception("Applying row-security policies failed")
        return 1
    finally:
        pool.close()
    print("policies applied")
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="equiprent", description="EquipRent access-control tooling.")
    sub = parser.add_subparsers(dest="command", required=True)

    verify = sub.add_parser("verify-token", help="Verify a bearer JWT and print its principal.")
    verify.add_argument("--token", "-t", help="JWT string; if omitted, read from STDIN", default=None)
    verify.set_defaults(func=cmd_verify_token)

    policies = sub.add_parser("policies", help="Print or apply the row-security policy set.")
    policies.add_argument("--apply", action="store_true", help="Execute against the database instead of printing.")
    policies.set_defaults(func=cmd_policies)
    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.WARNING)
    return args.func(args)

if __name__ == "__main__":
    sys.exit(main())
