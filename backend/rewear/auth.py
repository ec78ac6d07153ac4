"""
ReWear Backend — Authentication Helpers
=========================================

What:  Password hashing, signed bearer tokens and the FastAPI dependencies
       that turn a token into a verified `Principal(id, is_admin)`.
How:   passlib (pbkdf2_sha256) hashes passwords; itsdangerous signs a
       `{id, email, is_admin}` payload with SECRET_KEY and enforces
       TOKEN_MAX_AGE on load.
Who:   AuthService issues tokens; route handlers depend on
       `CurrentPrincipal` / `AdminPrincipal`. Services receive the
       Principal and never look at credentials themselves.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext

from rewear.config import settings
from rewear.exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

_TOKEN_SALT = "rewear-access-token"


@dataclass(frozen=True)
class Principal:
    """The verified identity attached to a request."""

    id: UUID
    is_admin: bool = False


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── Tokens ────────────────────────────────────────────────────────────────

def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt=_TOKEN_SALT)


def create_access_token(user_id: UUID, email: str, is_admin: bool) -> str:
    """Sign `{id, email, is_admin}` into a URL-safe bearer token."""
    return _serializer().dumps(
        {"id": str(user_id), "email": email, "is_admin": is_admin}
    )


def verify_access_token(token: str, max_age: Optional[int] = None) -> Principal:
    """
    Returns the Principal encoded in `token`.

    Raises:
        AuthenticationError(invalid_token) if the token is expired,
        tampered with, or carries a malformed payload.
    """
    try:
        data = _serializer().loads(token, max_age=max_age or settings.token_max_age)
    except SignatureExpired:
        raise AuthenticationError(message="Token expired", error_code="invalid_token")
    except BadSignature:
        raise AuthenticationError(message="Invalid token", error_code="invalid_token")

    try:
        return Principal(id=UUID(data["id"]), is_admin=bool(data.get("is_admin", False)))
    except (KeyError, TypeError, ValueError):
        logger.warning("Signed token with malformed payload rejected")
        raise AuthenticationError(message="Invalid token", error_code="invalid_token")


# ── Authorization ─────────────────────────────────────────────────────────

def ensure_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError(message="Admin access required", error_code="admin_required")


# ── FastAPI Dependencies ──────────────────────────────────────────────────
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Reads `Authorization: Bearer <token>`; 401 if missing or invalid."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return verify_access_token(credentials.credentials)


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    ensure_admin(principal)
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
