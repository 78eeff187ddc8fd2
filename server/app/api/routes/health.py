"""
Health check endpoint
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_provider_registry
from app.core.logging import get_logger
from app.integrations.esignature import ESignatureProviderRegistry

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    registry: ESignatureProviderRegistry = Depends(get_provider_registry),
) -> Dict[str, Any]:
    """Database reachability plus a health probe of every registered provider."""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as exc:
        logger.error("health.database_failed", error=str(exc))
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(exc)}
        health_status["status"] = "unhealthy"

    providers: Dict[str, str] = {}
    for name in registry.provider_names():
        healthy = await registry.get_provider(name).health_check()
        providers[name] = "healthy" if healthy else "unhealthy"
        if not healthy:
            health_status["status"] = "degraded" if health_status["status"] == "healthy" else health_status["status"]
    health_status["checks"]["providers"] = providers
    health_status["default_provider"] = registry.default_provider_name

    return health_status
