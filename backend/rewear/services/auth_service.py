"""
ReWear Backend — Auth Service
===============================

What:  Registration, login and the optional admin bootstrap account.
How:   Passwords are hashed with passlib; successful register/login returns
       a signed bearer token carrying `{id, email, is_admin}`.
Who:   Called by the /api/auth route handlers and the app lifespan.
"""

import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import create_access_token, hash_password, verify_password
from rewear.config import settings
from rewear.exceptions import AuthenticationError, ConflictError, DatabaseError
from rewear.models.user import User
from rewear.stores import IdentityStore

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.is_admin)


class AuthService:

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
    ) -> Tuple[User, str]:
        """
        Create a member with the signup bonus balance.

        Raises:
            ConflictError(user_exists) if the email is already registered,
            including when a concurrent signup wins the unique email index.
        """
        identity = IdentityStore(db)
        if await identity.find_by_email(email) is not None:
            raise ConflictError(message="User already exists", error_code="user_exists")

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            points=settings.signup_bonus_points,
            swap_count=0,
            location="",
            is_admin=False,
        )
        try:
            await identity.insert(user)
        except IntegrityError:
            raise ConflictError(message="User already exists", error_code="user_exists")
        except SQLAlchemyError as e:
            logger.error("Database error registering %s: %s", email, str(e), exc_info=True)
            raise DatabaseError(message="Could not create the account. Please try again.")
        logger.info("User registered: %s (%d starting points)", user.id, user.points)
        return user, issue_token(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            AuthenticationError(invalid_credentials) for an unknown email or
            a wrong password; the two cases are indistinguishable.
        """
        user = await IdentityStore(db).find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for %s", email)
            raise AuthenticationError(
                message="Invalid credentials",
                error_code="invalid_credentials",
            )
        return user, issue_token(user)

    async def bootstrap_admin(self, db: AsyncSession) -> None:
        """Create the configured admin account unless it already exists."""
        if not settings.admin_email or not settings.admin_password:
            return

        identity = IdentityStore(db)
        if await identity.find_by_email(settings.admin_email) is not None:
            return

        admin = User(
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
            name="Admin User",
            points=settings.admin_points,
            swap_count=0,
            location="",
            is_admin=True,
        )
        await identity.insert(admin)
        logger.info("Admin account created: %s", admin.email)


auth_service = AuthService()
