"""Pydantic schemas for sweets: request contracts and response envelopes."""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, field_validator

from sweetshop.models.sweet import MAX_QUANTITY

NAME_MIN_LENGTH = 2


# ── Field rules shared by create & update ──────────────────────────
def _check_name(v: str | None) -> str:
    if v is None or len(v.strip()) < NAME_MIN_LENGTH:
        raise ValueError("Sweet name must be at least 2 characters")
    v = v.strip()
    if len(v) > 200:
        raise ValueError("Sweet name must not exceed 200 characters")
    return v


def _check_category(v: str | None) -> str:
    if v is None or not v.strip():
        raise ValueError("Category is required")
    v = v.strip()
    if len(v) > 100:
        raise ValueError("Category must not exceed 100 characters")
    return v


def _check_price(v: float | None) -> float:
    if v is None or not math.isfinite(v) or v < 0:
        raise ValueError("Price must be a positive number")
    return v


def _check_quantity(v: int | None) -> int:
    if v is None or v < 0:
        raise ValueError("Quantity must be a non-negative integer")
    if v > MAX_QUANTITY:
        raise ValueError(f"Quantity must not exceed {MAX_QUANTITY}")
    return v


# ── Requests ────────────────────────────────────────────────────────
class SweetCreate(BaseModel):
    name: str
    category: str
    price: float
    quantity: int = 0

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        return _check_name(v)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str:
        return _check_category(v)

    @field_validator("price")
    @classmethod
    def _price(cls, v: float | None) -> float:
        return _check_price(v)

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int | None) -> int:
        return _check_quantity(v)


class SweetUpdate(BaseModel):
    """Partial update; every field that *is* sent must satisfy the create rules."""

    name: str | None = None
    category: str | None = None
    price: float | None = None
    quantity: int | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        return _check_name(v)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str:
        return _check_category(v)

    @field_validator("price")
    @classmethod
    def _price(cls, v: float | None) -> float:
        return _check_price(v)

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int | None) -> int:
        return _check_quantity(v)


class PurchaseRequest(BaseModel):
    quantity: int = 1


class RestockRequest(BaseModel):
    quantity: int | None = None


class SearchFilters(BaseModel):
    name: str | None = None
    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None


# ── Responses ───────────────────────────────────────────────────────
class SweetRead(BaseModel):
    id: int
    name: str
    category: str
    price: float
    quantity: int
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class SweetEnvelope(BaseModel):
    message: str
    sweet: SweetRead


class SweetList(BaseModel):
    sweets: list[SweetRead]


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str
    database: bool
