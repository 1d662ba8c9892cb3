"""
FastAPI dependencies: auth guards and database session.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.core.exceptions import Forbidden, Unauthenticated
from sweetshop.core.security import decode_access_token
from sweetshop.db.session import async_session_factory, init_db
from sweetshop.models.user import Role
from sweetshop.schemas.token import TokenClaims

# Missing credentials are reported by get_current_claims as 401
bearer_scheme = HTTPBearer(auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    await init_db()
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    """Verify the bearer token and expose its claims to the request."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Authentication required")

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise Unauthenticated("Invalid or expired token")

    request.state.claims = claims
    return claims


def check_admin(claims: TokenClaims | None) -> TokenClaims:
    """Let the claims through only when they carry the admin role."""
    role = claims.role if claims is not None else None
    if role is Role.ADMIN:
        return claims  # type: ignore[return-value]
    if role is Role.USER or role is None:
        raise Forbidden("Admin access required")
    raise AssertionError(f"Unhandled role: {role!r}")


async def require_admin(
    claims: TokenClaims = Depends(get_current_claims),
) -> TokenClaims:
    """Only allow admin role to proceed."""
    return check_admin(claims)
