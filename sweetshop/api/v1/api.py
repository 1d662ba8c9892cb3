"""
API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from sweetshop.api.v1.endpoints import auth, health, sweets

api_router = APIRouter()

# Registration, login, profile
api_router.include_router(auth.router)

# Inventory
api_router.include_router(sweets.router)

# Liveness
api_router.include_router(health.router)
