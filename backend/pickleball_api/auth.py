"""
Bearer-token authentication and requester lookup.

Tokens are issued by an external identity provider; we only verify them
and take the ``sub`` claim as the user id.
"""
import logging
import os
from typing import List, Optional

from fastapi import Depends, Header
from jose import ExpiredSignatureError, JWTError, jwt
from sqlmodel import Session

from pickleball_api.database import get_session
from pickleball_api.errors import AuthError, ForbiddenError
from pickleball_api.models.user import User

logger = logging.getLogger(__name__)


def _verification_key() -> Optional[str]:
    return os.getenv("AUTH_JWT_PUBLIC_KEY") or os.getenv("AUTH_JWT_SECRET")


def _algorithms() -> List[str]:
    raw = os.getenv("AUTH_JWT_ALGORITHMS", "HS256")
    return [a.strip() for a in raw.split(",") if a.strip()]


def verify_token(token: str) -> str:
    """Verify a bearer token and return its subject. Raises AuthError."""
    key = _verification_key()
    if not key:
        logger.error("No AUTH_JWT_SECRET / AUTH_JWT_PUBLIC_KEY configured; rejecting token")
        raise AuthError("Authentication is not configured")

    issuer = os.getenv("AUTH_JWT_ISSUER") or None
    audience = os.getenv("AUTH_JWT_AUDIENCE") or None
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=_algorithms(),
            issuer=issuer,
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError:
        raise AuthError("Invalid token")

    subject = claims.get("sub")
    if not subject:
        raise AuthError("Token missing subject")
    return str(subject)


def authenticate(authorization: Optional[str] = Header(default=None)) -> str:
    """FastAPI dependency: returns the authenticated user id."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing authorization token")
    token = authorization[len("Bearer "):].strip()
    if token.count(".") != 2:
        raise AuthError("Invalid token format")
    return verify_token(token)


def get_requester(
    user_id: str = Depends(authenticate),
    session: Session = Depends(get_session),
) -> Optional[User]:
    """The authenticated user's row, or None when the user has no profile yet."""
    return session.get(User, user_id)


def require_admin(requester: Optional[User] = Depends(get_requester)) -> User:
    if requester is None or not requester.is_admin:
        raise ForbiddenError("Forbidden")
    return requester


def is_master_admin(user: User) -> bool:
    master = (os.getenv("MASTER_ADMIN_EMAIL") or "").strip().lower()
    email = (user.email or "").strip().lower()
    return bool(master and email and master == email)
