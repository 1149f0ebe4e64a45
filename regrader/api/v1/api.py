"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from regrader.api.v1 import cross_version, health, item_analysis, item_mapping, regrading

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(regrading.router, tags=["regrading"])
api_router.include_router(cross_version.router, tags=["cross-version"])
api_router.include_router(item_analysis.router, tags=["item-analysis"])
api_router.include_router(item_mapping.router, prefix="/item-mapping", tags=["item-mapping"])
