"""API v1 router combining all route modules."""

from fastapi import APIRouter

from storefront_search.api.v1 import categories, health, search

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Product search (storefront, no auth required)
api_router.include_router(
    search.router,
    prefix="/products",
    tags=["search"],
)

# Category filters for the search page
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["categories"],
)
