"""
ReWear Backend — Identity Store
=================================

What:  Access to user records and their point balances.
Who:   AuthService, UserService, SwapService, StatsService.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.exceptions import NotFoundError
from rewear.models.user import User

logger = logging.getLogger(__name__)


class IdentityStore:
    """Users keyed by id, with a unique email lookup."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, user_id: UUID, for_update: bool = False) -> Optional[User]:
        """
        Fetch a user or None.

        With `for_update` the row is locked (where the backend supports it)
        and the identity-map copy is refreshed from the database.
        """
        query = select(User).where(User.id == user_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get(self, user_id: UUID, for_update: bool = False) -> User:
        user = await self.find(user_id, for_update=for_update)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def insert(self, user: User) -> User:
        user.email = user.email.strip().lower()
        self.db.add(user)
        await self.db.flush()
        logger.debug("User inserted: %s", user.id)
        return user

    async def update(self, user: User, **changes: Any) -> User:
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db.flush()
        return user

    async def delete(self, user: User) -> None:
        await self.db.delete(user)
        await self.db.flush()

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(User.id)))
        return result.scalar() or 0
