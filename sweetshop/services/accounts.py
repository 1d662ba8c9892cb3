"""
Registration and login.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.core.exceptions import AlreadyExists, NotFound, Unauthenticated
from sweetshop.core.security import create_access_token, get_password_hash, verify_password
from sweetshop.models.user import Role, User
from sweetshop.schemas.user import AuthResponse, UserLogin, UserRead, UserRegister

logger = logging.getLogger(__name__)


def _issue(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, user.role),
        user=UserRead.model_validate(user),
    )


async def register_user(db: AsyncSession, body: UserRegister) -> AuthResponse:
    existing = await db.execute(
        select(User.id).where(or_(User.email == body.email, User.username == body.username))
    )
    if existing.first() is not None:
        raise AlreadyExists("User already exists")

    user = User(
        username=body.username,
        email=body.email,
        hashed_password=get_password_hash(body.password),
        role=Role.USER.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same identity
        await db.rollback()
        raise AlreadyExists("User already exists") from None
    await db.refresh(user)

    logger.info("Registered user %d (%s)", user.id, user.email)
    return _issue(user)


async def authenticate_user(db: AsyncSession, body: UserLogin) -> AuthResponse:
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.hashed_password):
        logger.info("Failed login for %s", body.email)
        raise Unauthenticated("Invalid credentials")

    return _issue(user)


async def get_user(db: AsyncSession, user_id: int | None) -> User:
    user = await db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise NotFound("User not found")
    return user


async def ensure_admin(db: AsyncSession, username: str, email: str, password: str) -> bool:
    """Create the bootstrap admin account unless its email or username is taken.

    Returns ``True`` when an account was created.
    """
    email = email.strip().lower()
    result = await db.execute(
        select(User.email, User.username).where(or_(User.email == email, User.username == username))
    )
    existing = result.first()
    if existing is not None:
        if existing.email != email:
            logger.warning(
                "Default admin not created: username %r already belongs to %s",
                username,
                existing.email,
            )
        return False

    db.add(
        User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            role=Role.ADMIN.value,
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Default admin not created: %s or %r was taken concurrently", email, username)
        return False
    logger.info("Default admin created: %s (password: <redacted>)", email)
    return True
