#!/usr/bin/env python3
"""
Mint a development access token for an existing user.

Usage:
    python scripts/issue_token.py <user_id>
    python scripts/issue_token.py <user_id> --minutes 120

Environment Variables:
    JWT_SECRET_KEY: Must match the API's secret
"""

import argparse
import sys
from datetime import timedelta
from uuid import UUID

import dotenv

dotenv.load_dotenv()


def main() -> int:
    """Print a bearer token for the given user."""
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("user_id", help="UUID of the user in the users table")
    parser.add_argument("--minutes", type=int, default=60, help="Token lifetime in minutes")
    args = parser.parse_args()

    try:
        user_id = UUID(args.user_id)
    except ValueError:
        print(f"Error: '{args.user_id}' is not a valid UUID", file=sys.stderr)
        return 1

    from scheduling.config import settings
    from scheduling.core.security import create_access_token

    if settings.is_production:
        print("Error: refusing to mint tokens in production", file=sys.stderr)
        return 1

    token = create_access_token(
        data={"sub": str(user_id)},
        expires_delta=timedelta(minutes=args.minutes),
    )
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
