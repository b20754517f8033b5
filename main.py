#!/usr/bin/env python3
"""
SSO auth admin CLI -- provisioning tasks that sit outside the request path.

Client applications and admin flags are provisioned here; the API only reads
them.

Usage:
  python main.py init-db
  python main.py add-app billing "$(openssl rand -hex 32)"
  python main.py register alice@example.com
  python main.py set-admin 1
  python main.py set-admin 1 --revoke
  python main.py --db-url sqlite:///other.db add-app reports "$(openssl rand -hex 32)"

Environment variables:
  DATABASE_URL       Default store location (see core/config.py).
  BCRYPT_ROUNDS      Work factor used by `register`.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.errors import AppAlreadyExists, AuthError, UserAlreadyExists, UserNotFound
from auth.service import build_auth_service
from auth.store import CredentialStore
from core.config import get_settings

logger = logging.getLogger("ssoauth.cli")


def _cmd_init_db(store: CredentialStore, args: argparse.Namespace) -> int:
    # CredentialStore() already created any missing tables.
    print("Database initialized.")
    return 0


def _cmd_add_app(store: CredentialStore, args: argparse.Namespace) -> int:
    if len(args.secret) < 32:
        print("  [!] Secret must be at least 32 characters.")
        return 2
    try:
        app_id = store.create_app(args.name, args.secret)
    except AppAlreadyExists:
        print(f"  [!] An app named '{args.name}' already exists.")
        return 1
    print(f"App '{args.name}' created with id {app_id}.")
    return 0


def _cmd_set_admin(store: CredentialStore, args: argparse.Namespace) -> int:
    try:
        store.set_admin(args.user_id, not args.revoke)
    except UserNotFound:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    state = "revoked from" if args.revoke else "granted to"
    print(f"Admin {state} user {args.user_id}.")
    return 0


def _cmd_register(store: CredentialStore, args: argparse.Namespace) -> int:
    settings = get_settings()
    service = build_auth_service(
        store,
        token_ttl_seconds=settings.token_ttl_seconds,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 2
    try:
        user_id = service.register_new_user(args.email, password)
    except UserAlreadyExists:
        print(f"  [!] '{args.email}' is already registered.")
        return 1
    print(f"User '{args.email}' registered with id {user_id}.")
    return 0


_COMMANDS = {
    "init-db": _cmd_init_db,
    "add-app": _cmd_add_app,
    "set-admin": _cmd_set_admin,
    "register": _cmd_register,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso-auth",
        description="Provisioning tool for the SSO auth store.",
    )
    parser.add_argument(
        "--db-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL from settings)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing tables")

    add_app = sub.add_parser("add-app", help="Register a client application")
    add_app.add_argument("name", help="Unique display name")
    add_app.add_argument("secret", help="HS256 signing secret (32+ characters)")

    set_admin = sub.add_parser("set-admin", help="Grant or revoke the admin flag")
    set_admin.add_argument("user_id", type=int, help="Target user id")
    set_admin.add_argument("--revoke", action="store_true", help="Clear the flag instead of setting it")

    register = sub.add_parser("register", help="Register a user (password read from the terminal)")
    register.add_argument("email")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    store = CredentialStore(args.db_url or settings.database_url)
    try:
        return _COMMANDS[args.command](store, args)
    except AuthError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print("  [!] Operation failed; see log for details.")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
