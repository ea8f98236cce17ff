#!/usr/bin/env python3
"""
User Management Utility

This script provides maintenance commands for user accounts:
- Promote a user to the admin role by email
- List registered users
"""

import asyncio
import sys

from api.config import config
from api.database import APIDatabaseService, connect_to_database
from services.exceptions import NotFoundError
from services.user_service import UserService
from utilities.logger import setup_logging


async def promote_user(email: str) -> int:
    """Make the user with this email an admin."""
    client, database = await connect_to_database(config.mongodb_url, config.mongodb_database)
    try:
        user_service = UserService(APIDatabaseService(database))
        user = await user_service.promote_to_admin(email)
        print(f"User {user.get('name')} ({user.get('email')}) has been made an admin")
        return 0
    except NotFoundError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        client.close()


async def list_users(limit: int = 100) -> int:
    """Print registered users, newest first."""
    client, database = await connect_to_database(config.mongodb_url, config.mongodb_database)
    try:
        users = await UserService(APIDatabaseService(database)).list_users(limit)
        if not users:
            print("No users found")
            return 0

        print(f"Found {len(users)} users:")
        for i, user in enumerate(users, 1):
            print(f"{i:3d}. {user.get('username'):<20} {user.get('email'):<30} {user.get('role', 'user')}")
        return 0
    finally:
        client.close()


async def main() -> int:
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_users.py [promote|list] [email]")
        print()
        print("Commands:")
        print("  promote  - Give the admin role to the user with the given email")
        print("  list     - List registered users")
        return 1

    command = sys.argv[1].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if command == "promote":
        if len(sys.argv) < 3:
            print("Error: email required for promote command")
            print("Usage: python manage_users.py promote <email>")
            return 1
        return await promote_user(sys.argv[2])
    if command == "list":
        return await list_users()

    print(f"Unknown command: {command}")
    print("Available commands: promote, list")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
