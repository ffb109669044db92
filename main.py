#!/usr/bin/env python3
"""
YAccounting -- administration CLI.

Usage:
  python main.py create-user alice
  python main.py create-user admin --role admin

The password is read from an interactive prompt (never from argv, so it does
not end up in shell history) and must meet the same complexity rules as
self-registration. Self-registration always creates role "user"; this command
is how admin accounts are seeded.

Environment variables:
  SECRET_KEY, ENCRYPTION_KEY, DATABASE_URL, BCRYPT_ROUNDS -- see core/config.py
"""

import argparse
import asyncio
import getpass
import logging
import sys

from auth.policy import ALLOWED_SYMBOLS, MIN_LENGTH
from auth.service import AuthCore
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError


async def _create_user(auth: AuthCore, username: str, password: str, role: str) -> None:
    user = await auth.register(username, password, role=role)
    print(f"  Created user '{user.username}' (id={user.id}, role={user.role}).")


def _read_password() -> str:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return password


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="yaccounting",
        description="YAccounting administration commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Password rules: at least {MIN_LENGTH} characters with a lowercase letter,
an uppercase letter, a digit and one of {ALLOWED_SYMBOLS}
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = subparsers.add_parser("create-user", help="Create a user account")
    create.add_argument("username", help="Unique, case-sensitive username")
    create.add_argument(
        "--role",
        default="user",
        help="Role stored on the account and carried in session tokens (default: user)",
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return

    logging.basicConfig(level=logging.WARNING, format="%(levelname)-5s %(name)s %(message)s")

    settings = get_settings()
    password = _read_password()
    with UserStore(settings.database_url) as store:
        auth = AuthCore.from_settings(settings, store)
        try:
            asyncio.run(_create_user(auth, args.username, password, args.role))
        except AppError as exc:
            print(f"  [!] {exc.message}")
            sys.exit(1)


if __name__ == "__main__":
    main()
