"""Pydantic schemas for JWT tokens."""

from __future__ import annotations

from pydantic import BaseModel

from sweetshop.models.user import Role


class TokenClaims(BaseModel):
    """Identity carried by a verified access token."""

    sub: str
    role: Role | None = None

    @property
    def user_id(self) -> int | None:
        try:
            return int(self.sub)
        except ValueError:
            return None
