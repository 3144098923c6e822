"""Health check endpoint."""
import logging
from fastapi import APIRouter, Request

from app.core.config import settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """Report liveness with the shop and backend the service runs against."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {
        "status": "healthy",
        "shop": settings.shop_name,
        "backend": settings.backend_mode,
        "order_option": settings.order_option,
    }
