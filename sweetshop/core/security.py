"""
JWT token creation / verification and password hashing (bcrypt).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from sweetshop.core.config import settings
from sweetshop.models.user import Role
from sweetshop.schemas.token import TokenClaims

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    subject: str | Any,
    role: Role | str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode(
        {
            "exp": expire,
            "sub": str(subject),
            "role": Role(role).value,
            "type": "access",
        },
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_access_token(token: str) -> TokenClaims | None:
    """Return the claims of a valid *access* token, else ``None``.

    Every failure mode (bad signature, expiry, wrong type, missing subject)
    collapses to ``None``; the reason is only logged.
    """
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None

    if payload.get("type") != "access" or not payload.get("sub"):
        logger.debug("Rejected bearer token: unexpected payload shape")
        return None

    try:
        role = Role(payload.get("role"))
    except ValueError:
        role = None

    return TokenClaims(sub=str(payload["sub"]), role=role)
