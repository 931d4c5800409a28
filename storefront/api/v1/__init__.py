"""
API v1 package.

Contains versioned API routes for the storefront auth and payment API.
"""

from fastapi import APIRouter

from storefront.api.v1.auth import router as auth_router
from storefront.api.v1.orders import router as orders_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(orders_router)

__all__ = ["router"]
