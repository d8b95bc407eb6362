#!/usr/bin/env python3
"""
Deposit administration CLI

Usage:
    deposit-admin create-user user1 --name "Kim"
    deposit-admin create-user admin --name "Lee" --admin
    deposit-admin issue-token user1 --days 30
    deposit-admin reload-deposits
"""

import argparse
from typing import List, Optional

from app.database import SessionLocal, init_db
from app.models.user import UserRole
from app.services import deposit_service
from app.services.auth_service import create_jwt_token, get_active_user


def create_user(args: argparse.Namespace) -> int:
    role = UserRole.ADMIN if args.admin else UserRole.USER
    with SessionLocal() as db:
        try:
            user = deposit_service.create_member(db, args.user_id, args.name, role)
        except deposit_service.MemberExistsError as e:
            print(f"Error: {e}")
            return 1
        db.commit()
        print(f"Created {user.role.value} {user.id} ({user.name})")
    return 0


def issue_token(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        if get_active_user(db, args.user_id) is None:
            print(f"Error: unknown user {args.user_id}")
            return 1
    print(create_jwt_token(args.user_id, expires_days=args.days))
    return 0


def reload_deposits(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        changed = deposit_service.reload_all_deposits(db)
        db.commit()
    print(f"Reloaded deposits, {changed} balance(s) changed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deposit-admin", description="Manage members and deposits"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-user", help="Create a member with a deposit")
    create.add_argument("user_id")
    create.add_argument("--name", required=True)
    create.add_argument("--admin", action="store_true", help="Grant the admin role")
    create.set_defaults(func=create_user)

    token = subparsers.add_parser("issue-token", help="Print a bearer token")
    token.add_argument("user_id")
    token.add_argument(
        "--days", type=int, default=None, help="Lifetime (default: ACCESS_TOKEN_EXPIRE_DAYS)"
    )
    token.set_defaults(func=issue_token)

    reload_cmd = subparsers.add_parser(
        "reload-deposits", help="Recompute every deposit from assignment records"
    )
    reload_cmd.set_defaults(func=reload_deposits)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_db()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
