"""
Inventory operations over the ``sweets`` table.

Every function is one logical transaction against a single record.
Stock changes are single conditional ``UPDATE`` statements; a purchase
that would take the quantity below zero matches no row.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.core.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    NotFound,
    StockLimitExceeded,
)
from sweetshop.models.sweet import MAX_QUANTITY, Sweet
from sweetshop.schemas.sweet import SearchFilters, SweetCreate, SweetUpdate

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Sweet.created_at.desc(), Sweet.id.desc())


def _storable(sweet_id: int) -> bool:
    """Ids outside the INTEGER range cannot name a stored row."""
    return 0 < sweet_id <= MAX_QUANTITY


def _escape_like(term: str) -> str:
    """Escape LIKE metacharacters so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


async def _reload(db: AsyncSession, sweet_id: int) -> Sweet | None:
    return await db.get(Sweet, sweet_id, populate_existing=True)


async def get_sweet(db: AsyncSession, sweet_id: int) -> Sweet:
    sweet = await db.get(Sweet, sweet_id) if _storable(sweet_id) else None
    if sweet is None:
        raise NotFound("Sweet not found")
    return sweet


async def create_sweet(db: AsyncSession, data: SweetCreate) -> Sweet:
    sweet = Sweet(**data.model_dump())
    db.add(sweet)
    await db.commit()
    await db.refresh(sweet)
    logger.info("Created sweet %d (%s, qty %d)", sweet.id, sweet.name, sweet.quantity)
    return sweet


async def list_sweets(db: AsyncSession) -> list[Sweet]:
    result = await db.execute(select(Sweet).order_by(*_NEWEST_FIRST))
    return list(result.scalars().all())


async def search_sweets(db: AsyncSession, filters: SearchFilters) -> list[Sweet]:
    """All provided filters are ANDed; omitted ones impose no constraint."""
    query = select(Sweet)
    if filters.name:
        query = query.where(Sweet.name.ilike(f"%{_escape_like(filters.name)}%", escape="\\"))
    if filters.category:
        query = query.where(
            Sweet.category.ilike(f"%{_escape_like(filters.category)}%", escape="\\")
        )
    if filters.min_price is not None:
        query = query.where(Sweet.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.where(Sweet.price <= filters.max_price)

    result = await db.execute(query.order_by(*_NEWEST_FIRST))
    return list(result.scalars().all())


async def update_sweet(db: AsyncSession, sweet_id: int, data: SweetUpdate) -> Sweet:
    sweet = await get_sweet(db, sweet_id)

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(sweet, field, value)

    await db.commit()
    await db.refresh(sweet)
    logger.info("Updated sweet %d: %s", sweet_id, sorted(changes))
    return sweet


async def delete_sweet(db: AsyncSession, sweet_id: int) -> None:
    if not _storable(sweet_id):
        raise NotFound("Sweet not found")
    result = await db.execute(delete(Sweet).where(Sweet.id == sweet_id))
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Sweet not found")
    await db.commit()
    logger.info("Deleted sweet %d", sweet_id)


async def purchase_sweet(db: AsyncSession, sweet_id: int, quantity: int = 1) -> Sweet:
    """Take ``quantity`` units out of stock, or reject without touching it."""
    if quantity < 1:
        raise InvalidQuantity()
    if not _storable(sweet_id):
        raise NotFound("Sweet not found")

    applied = False
    if quantity <= MAX_QUANTITY:
        result = await db.execute(
            update(Sweet)
            .where(Sweet.id == sweet_id, Sweet.quantity >= quantity)
            .values(quantity=Sweet.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        applied = result.rowcount > 0

    if not applied:
        await db.rollback()
        current = await _reload(db, sweet_id)
        if current is None:
            raise NotFound("Sweet not found")
        logger.info(
            "Purchase of %d x sweet %d rejected (available %d)",
            quantity,
            sweet_id,
            current.quantity,
        )
        raise InsufficientStock(available=current.quantity)

    await db.commit()
    sweet = await _reload(db, sweet_id)
    if sweet is None:
        # Deleted between the update and the re-read
        raise NotFound("Sweet not found")
    logger.info("Purchased %d x sweet %d, %d left", quantity, sweet_id, sweet.quantity)
    return sweet


async def restock_sweet(db: AsyncSession, sweet_id: int, quantity: int | None) -> Sweet:
    """Add ``quantity`` units to stock. The amount is checked before the lookup."""
    if quantity is None or quantity <= 0:
        raise InvalidQuantity()
    if not _storable(sweet_id):
        raise NotFound("Sweet not found")

    applied = False
    if quantity <= MAX_QUANTITY:
        result = await db.execute(
            update(Sweet)
            .where(Sweet.id == sweet_id, Sweet.quantity <= MAX_QUANTITY - quantity)
            .values(quantity=Sweet.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        applied = result.rowcount > 0

    if not applied:
        await db.rollback()
        if await _reload(db, sweet_id) is None:
            raise NotFound("Sweet not found")
        logger.info("Restock of sweet %d by %d rejected: over stock limit", sweet_id, quantity)
        raise StockLimitExceeded(maximum=MAX_QUANTITY)

    await db.commit()
    sweet = await _reload(db, sweet_id)
    if sweet is None:
        raise NotFound("Sweet not found")
    logger.info("Restocked sweet %d by %d, now %d", sweet_id, quantity, sweet.quantity)
    return sweet
