"""Directory lookups for the people taking part in appointments.

Accounts are owned by the identity provider and mirrored into ``users``; this
service only reads them, keeping a short-lived copy of each profile in Redis
since every authenticated request resolves the caller's role.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scheduling.core.redis_client import CacheManager
from scheduling.models.users import users
from scheduling.schemas.users import UserInDB


class UserService:
    """Read access to user profiles, cached when Redis is available."""

    # Role changes show up after at most 30 minutes
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def cache_key(user_id: UUID) -> str:
        return f"user:{user_id}"

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> UserInDB | None:
        """
        Resolve a user, reading through the cache.

        Args:
            db: Database session
            user_id: User ID taken from a verified token

        Returns:
            The user, or None if the directory does not know them
        """
        if self.cache:
            cached = self.cache.get_json(self.cache_key(user_id))
            if cached:
                return UserInDB.model_validate(cached)

        user = await self._load(db, user_id)

        if user and self.cache:
            self.cache.set_json(
                self.cache_key(user_id),
                user.model_dump(mode="json"),
                ttl=self.USER_CACHE_TTL,
            )

        return user

    @staticmethod
    async def _load(db: AsyncSession, user_id: UUID) -> UserInDB | None:
        result = await db.execute(select(users).where(users.c.id == user_id))
        row = result.mappings().first()
        return UserInDB.model_validate(dict(row)) if row else None
