"""Script to initialize the database from the table metadata.

Prefer ``scripts/migrate.py`` for real deployments; this is for local
development databases.
"""

import asyncio

from scheduling.database import create_engine
from scheduling.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    engine = create_engine()

    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    finally:
        await engine.dispose()

    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
