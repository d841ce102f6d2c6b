"""
Development-only endpoints.

WHAT: Seed demo listings and agents
WHY: Local demos need data without the listing and matching flows
HOW: Gated by ENABLE_DEV_ROUTES; 403 otherwise
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ....core.config import settings
from ....core.database import get_db
from ....middleware.error_handler import error_body
from ....models.api_schemas import SeedResponse
from ....services.seed import seed_demo_data

router = APIRouter()


@router.post("/dev/seed", response_model=SeedResponse)
async def seed():
    if not settings.ENABLE_DEV_ROUTES:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=error_body("DEV_ROUTES_DISABLED", "Seed is only available when ENABLE_DEV_ROUTES is set"),
        )
    with get_db() as db:
        return SeedResponse(**seed_demo_data(db))
