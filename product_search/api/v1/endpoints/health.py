"""
Health checks - for load balancers, Kubernetes, and monitoring.
Challenge: Fast liveness; readiness depends on Elasticsearch being reachable.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from product_search.config import get_settings
from product_search.core.dependencies import EsClient

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/ready")
async def ready(es: EsClient):
    """Readiness: can Elasticsearch answer a ping?"""
    try:
        reachable = bool(await es.ping())
    except Exception as e:
        logger.warning("Elasticsearch ping failed: %s", e)
        reachable = False
    if not reachable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "elasticsearch": False},
        )
    return {"status": "ready", "elasticsearch": True}
