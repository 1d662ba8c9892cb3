"""
Sweet inventory endpoints.

- Every route requires a valid bearer token (router-level dependency).
- Listing, search and purchase are open to any authenticated user.
- Create / update / delete / restock require the admin role.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.api.v1.deps import get_current_claims, get_db, require_admin
from sweetshop.schemas.sweet import (
    MessageResponse,
    PurchaseRequest,
    RestockRequest,
    SearchFilters,
    SweetCreate,
    SweetEnvelope,
    SweetList,
    SweetUpdate,
)
from sweetshop.schemas.token import TokenClaims
from sweetshop.services import inventory

router = APIRouter(
    prefix="/sweets",
    tags=["sweets"],
    dependencies=[Depends(get_current_claims)],
)


@router.get("", response_model=SweetList)
async def list_sweets(db: AsyncSession = Depends(get_db)) -> SweetList:
    sweets = await inventory.list_sweets(db)
    return SweetList.model_validate({"sweets": sweets}, from_attributes=True)


@router.get("/search", response_model=SweetList)
async def search_sweets(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    db: AsyncSession = Depends(get_db),
) -> SweetList:
    """Filter by name / category substring and an inclusive price range."""
    filters = SearchFilters(
        name=name,
        category=category,
        min_price=min_price,
        max_price=max_price,
    )
    sweets = await inventory.search_sweets(db, filters)
    return SweetList.model_validate({"sweets": sweets}, from_attributes=True)


@router.post("", response_model=SweetEnvelope, status_code=status.HTTP_201_CREATED)
async def create_sweet(
    body: SweetCreate,
    db: AsyncSession = Depends(get_db),
    _admin: TokenClaims = Depends(require_admin),
) -> SweetEnvelope:
    sweet = await inventory.create_sweet(db, body)
    return SweetEnvelope.model_validate(
        {"message": "Sweet created successfully", "sweet": sweet}, from_attributes=True
    )


@router.put("/{sweet_id}", response_model=SweetEnvelope)
async def update_sweet(
    sweet_id: int,
    body: SweetUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: TokenClaims = Depends(require_admin),
) -> SweetEnvelope:
    sweet = await inventory.update_sweet(db, sweet_id, body)
    return SweetEnvelope.model_validate(
        {"message": "Sweet updated successfully", "sweet": sweet}, from_attributes=True
    )


@router.delete("/{sweet_id}", response_model=MessageResponse)
async def delete_sweet(
    sweet_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: TokenClaims = Depends(require_admin),
) -> MessageResponse:
    await inventory.delete_sweet(db, sweet_id)
    return MessageResponse(message="Sweet deleted successfully")


@router.post("/{sweet_id}/purchase", response_model=SweetEnvelope)
async def purchase_sweet(
    sweet_id: int,
    body: Optional[PurchaseRequest] = Body(default=None),
    db: AsyncSession = Depends(get_db),
) -> SweetEnvelope:
    """Buy ``quantity`` units (default 1)."""
    quantity = body.quantity if body is not None else 1
    sweet = await inventory.purchase_sweet(db, sweet_id, quantity)
    return SweetEnvelope.model_validate(
        {"message": "Purchase successful", "sweet": sweet}, from_attributes=True
    )


@router.post("/{sweet_id}/restock", response_model=SweetEnvelope)
async def restock_sweet(
    sweet_id: int,
    body: Optional[RestockRequest] = Body(default=None),
    db: AsyncSession = Depends(get_db),
    _admin: TokenClaims = Depends(require_admin),
) -> SweetEnvelope:
    quantity = body.quantity if body is not None else None
    sweet = await inventory.restock_sweet(db, sweet_id, quantity)
    return SweetEnvelope.model_validate(
        {"message": "Restock successful", "sweet": sweet}, from_attributes=True
    )
