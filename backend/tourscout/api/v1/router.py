"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from tourscout.api.v1 import health, scan, tours

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(scan.router, prefix="/content", tags=["content"])
api_v1_router.include_router(tours.router, prefix="/tours", tags=["tours"])
