"""
Public health check.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy import select

from sweetshop.db.session import async_session_factory
from sweetshop.schemas.sweet import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Always answers 200; ``database`` reports whether the store responds."""
    result = HealthResponse(message="Sweet Shop API is running", database=False)

    try:
        async with async_session_factory() as session:
            await session.execute(select(1))
        result.database = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    return result
