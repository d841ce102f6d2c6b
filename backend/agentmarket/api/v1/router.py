"""
API v1 router aggregation.

WHAT: Combine all v1 endpoint routers
WHY: Single place to register all API routes
HOW: Include routers from endpoints with prefixes
"""

from fastapi import APIRouter

from .endpoints import catalog, dev, escrow, events, negotiations, orchestrate, status, streaming

# Create main v1 router
api_router = APIRouter()

api_router.include_router(status.router, prefix="/api/v1", tags=["status"])
api_router.include_router(orchestrate.router, prefix="/api/v1", tags=["orchestration"])
api_router.include_router(catalog.router, prefix="/api/v1", tags=["catalog"])
api_router.include_router(negotiations.router, prefix="/api/v1", tags=["negotiations"])
api_router.include_router(streaming.router, prefix="/api/v1", tags=["streaming"])
api_router.include_router(escrow.router, prefix="/api/v1", tags=["escrow"])
api_router.include_router(events.router, prefix="/api/v1", tags=["events"])
api_router.include_router(dev.router, prefix="/api/v1", tags=["dev"])
