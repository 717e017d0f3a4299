#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from cms_api.core.config import IS_DEV, IS_PROD  # noqa: E402
from cms_api.core.database import Database  # noqa: E402
from cms_api.services.auth import AuthService  # noqa: E402

DEFAULT_ADMIN_NAME = "Admin"
DEFAULT_ADMIN_EMAIL = "admin@cms.com"
DEFAULT_ADMIN_PASSWORD = "Admin@123"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the default admin user (skipped when it exists).")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL), help="Admin email")
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", DEFAULT_ADMIN_NAME), help="Admin name")
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD", ""), help="Admin password")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    password = args.password
    if not password:
        if IS_PROD:
            print("ADMIN_PASSWORD (or --password) is required in production.")
            return 1
        password = DEFAULT_ADMIN_PASSWORD

    database = Database()
    try:
        user, created = AuthService(database).ensure_user(name=args.name, email=args.email, password=password)
    finally:
        database.dispose()

    if not created:
        print(f"[SKIP]  Admin user '{user.email}' already exists.")
        return 0

    print(f"[OK]    Admin user created: email={user.email}")
    if IS_DEV and password == DEFAULT_ADMIN_PASSWORD:
        print(f"Dev credentials -> Email: {user.email} | Password: {password}")
        print("Change the password before deploying anywhere else.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
