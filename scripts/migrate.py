#!/usr/bin/env python3
"""
Apply or roll back the appointment store schema.

Usage:
    python scripts/migrate.py                      # upgrade to head
    python scripts/migrate.py upgrade 002
    python scripts/migrate.py downgrade -1
    python scripts/migrate.py create "add room column"
"""

import argparse
import sys

from alembic import command
from alembic.config import Config


def main() -> int:
    """Run the requested Alembic command against ``alembic.ini``."""
    parser = argparse.ArgumentParser(description="Manage database migrations")
    subcommands = parser.add_subparsers(dest="action")

    upgrade = subcommands.add_parser("upgrade", help="Upgrade to a revision")
    upgrade.add_argument("revision", nargs="?", default="head")

    downgrade = subcommands.add_parser("downgrade", help="Downgrade to a revision")
    downgrade.add_argument("revision", nargs="?", default="-1")

    create = subcommands.add_parser("create", help="Autogenerate a new revision")
    create.add_argument("message", nargs="+")

    args = parser.parse_args()
    config = Config("alembic.ini")
    action = args.action or "upgrade"

    try:
        if action == "create":
            message = " ".join(args.message)
            print(f"Creating migration: {message}")
            command.revision(config, message=message, autogenerate=True)
        elif action == "downgrade":
            print(f"Rolling back database to {args.revision}...")
            command.downgrade(config, args.revision)
        else:
            revision = getattr(args, "revision", "head")
            print(f"Upgrading database to {revision}...")
            command.upgrade(config, revision)
    except Exception as e:
        print(f"✗ Migration {action} failed: {e}", file=sys.stderr)
        return 1

    print(f"✓ Migration {action} completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
