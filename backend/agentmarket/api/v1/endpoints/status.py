"""
Status and health check endpoints.

WHAT: Health monitoring for the reasoning backend and database
WHY: Quick diagnostics for the frontend and ops
HOW: Provider ping (skipped when unconfigured) and DB ping
"""

from fastapi import APIRouter

from ....core.config import settings
from ....core.database import ping_database
from ....llm.provider_factory import get_provider
from ....llm.types import LLMProviderError
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _backend_status() -> dict:
    try:
        provider = get_provider()
    except LLMProviderError as e:
        logger.error(f"Failed to get LLM provider: {e}")
        return {"provider": settings.LLM_PROVIDER, "configured": False, "mode": "demo",
                "available": False, "base_url": None, "models": None, "error": str(e)}

    if not provider.is_configured():
        return {"provider": settings.LLM_PROVIDER, "configured": False, "mode": "demo",
                "available": False, "base_url": None, "models": None, "error": None}

    ping = await provider.ping()
    return {
        "provider": settings.LLM_PROVIDER,
        "configured": True,
        "mode": "llm",
        "available": ping.available,
        "base_url": ping.base_url,
        "models": ping.models,
        "error": ping.error,
    }


@router.get("/llm/status")
async def llm_status():
    """
    Reasoning backend and database status.

    An unconfigured backend reports mode "demo": steps use the
    deterministic generator.
    """
    return {"llm": await _backend_status(), "database": ping_database()}


@router.get("/health")
async def health_check():
    """Overall status; healthy whenever the database is reachable."""
    backend = await _backend_status()
    db_status = ping_database()

    if not db_status["available"]:
        overall = "unhealthy"
    elif backend["configured"] and not backend["available"]:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "llm_mode": backend["mode"],
        "llm_available": backend["available"],
        "database_available": db_status["available"],
    }
