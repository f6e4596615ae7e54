#!/usr/bin/env python3
"""
Example: Register a team awaiting payment, or list registrations.

The portal normally creates these rows; this script does the same against
the configured DATABASE_URL so an ITN can be tested end to end.

Usage:
    # Create a registration and print its id (use it as m_payment_id)
    python register_team.py add "Soweto Strikers" --manager "Thabo Mokoena"

    # List all registrations
    python register_team.py list
"""

import argparse
import asyncio
import json
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database.db import Database
from models.notification import RegistrationRecord


async def add_team(db: Database, args: argparse.Namespace) -> None:
    """Insert a registration in Pending Payment state."""
    row = await db.create_registration(
        team_name=args.team_name,
        manager_name=args.manager,
        manager_email=args.email,
        num_players=args.players
    )
    record = RegistrationRecord.from_dict(row)

    print("✅ Team registered")
    print(f"  ID (m_payment_id): {record.id}")
    print(f"  Status: {record.status}")


async def list_teams(db: Database) -> None:
    """Print every registration."""
    rows = await db.get_all_registrations()
    records = [RegistrationRecord.from_dict(row).to_dict() for row in rows]
    print(json.dumps(records, indent=2))


async def main():
    parser = argparse.ArgumentParser(
        description='Manage team registrations'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    add = subparsers.add_parser('add', help='Register a team')
    add.add_argument('team_name', help='Team name')
    add.add_argument('--manager', help='Manager name (optional)')
    add.add_argument('--email', help='Manager email (optional)')
    add.add_argument('--players', type=int, help='Number of players (optional)')

    subparsers.add_parser('list', help='List registrations')

    args = parser.parse_args()

    db = Database()
    await db.connect()
    await db.init_schema()

    try:
        if args.command == 'add':
            await add_team(db, args)
        else:
            await list_teams(db)
    finally:
        await db.disconnect()


if __name__ == '__main__':
    asyncio.run(main())
