#!/usr/bin/env python3
"""
Bootstrap an administrator account.

Uses ADMIN_EMAIL / ADMIN_PASSWORD from the environment when set, otherwise
prompts. Run once after the first deployment.
"""

import getpass
import os
import sys

from vmguardian import create_app
from vmguardian.exceptions import VMGuardianError
from vmguardian.services.user_service import create_user, get_user_by_email


def create_admin():
    """Interactive admin creation."""
    app = create_app()

    with app.app_context():
        print("\n🔧 Create VM Guardian administrator")
        print("=" * 50)

        email = os.getenv("ADMIN_EMAIL") or input("Email: ").strip()
        if not email:
            print("❌ Email is required")
            return 1

        if get_user_by_email(email):
            print(f"❌ User '{email}' already exists!")
            return 1

        name = os.getenv("ADMIN_NAME") or input("Name [Administrator]: ").strip() or "Administrator"
        password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
        if not password:
            print("❌ Password is required")
            return 1

        try:
            user = create_user(email, name, password, role='admin', status='active')
        except VMGuardianError as e:
            print(f"❌ {e}")
            return 1

        print(f"\n✅ Administrator '{user.email}' created")
        return 0


if __name__ == "__main__":
    sys.exit(create_admin())
