#!/usr/bin/env python3
"""Create an admin or approver account for the campaign API."""

import sys
import getpass

import queries
from auth import ROLES, create_user


def main():
    role = sys.argv[1] if len(sys.argv) > 1 else 'admin'
    if role not in ROLES:
        print(f"Error: role must be one of {', '.join(ROLES)}")
        sys.exit(1)

    queries.init_db()

    print(f"Create {role.title()} User")
    print("-" * 30)

    username = input("Username: ").strip()
    if not username:
        print("Error: Username is required")
        sys.exit(1)

    password = getpass.getpass("Password: ")
    if not password:
        print("Error: Password is required")
        sys.exit(1)

    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match")
        sys.exit(1)

    user_id = create_user(username, password, role=role)
    if not user_id:
        print(f"Error: User '{username}' already exists")
        sys.exit(1)

    print(f"\n{role.title()} user '{username}' created (ID: {user_id})")
    print("Log in with POST /login")


if __name__ == '__main__':
    main()
