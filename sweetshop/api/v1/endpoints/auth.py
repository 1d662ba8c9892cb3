"""
Auth endpoints: registration, login & current-user profile.
"""

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.api.v1.deps import get_current_claims, get_db
from sweetshop.core.config import settings
from sweetshop.models.user import User
from sweetshop.schemas.token import TokenClaims
from sweetshop.schemas.user import AuthResponse, UserLogin, UserRead, UserRegister
from sweetshop.services import accounts

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: UserRegister,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Create a regular user account and return a fresh token."""
    return await accounts.register_user(db, body)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: UserLogin,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Exchange email + password for a bearer token."""
    return await accounts.authenticate_user(db, body)


@router.get("/me", response_model=UserRead)
async def read_current_user(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return profile of the currently authenticated user."""
    return await accounts.get_user(db, claims.user_id)
