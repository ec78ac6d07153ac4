"""
ReWear Backend — User Profile Service
=======================================

What:  Read and edit the caller's own profile.
How:   Only name, location and avatar are editable here; points and the
       swap counter change exclusively through swap settlement.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import Principal
from rewear.exceptions import DatabaseError
from rewear.models.user import User
from rewear.schemas.user import ProfileUpdate
from rewear.stores import IdentityStore

logger = logging.getLogger(__name__)


class UserService:

    async def get_profile(self, db: AsyncSession, principal: Principal) -> User:
        return await IdentityStore(db).get(principal.id)

    async def update_profile(
        self,
        db: AsyncSession,
        principal: Principal,
        changes: ProfileUpdate,
    ) -> User:
        """Apply the non-empty fields of `changes`."""
        identity = IdentityStore(db)
        user = await identity.get(principal.id)

        updates = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value
        }
        if updates:
            try:
                await identity.update(user, **updates)
            except SQLAlchemyError as e:
                logger.error("Database error updating profile %s: %s", user.id, str(e), exc_info=True)
                raise DatabaseError(message="Could not update the profile. Please try again.")
            logger.info("Profile of %s updated: %s", user.id, sorted(updates))
        return user


user_service = UserService()
