"""
api/cron.py

Maintenance hook for an external scheduler.

Endpoints:
  - POST /cron: Replays conversation writes that landed in the in-memory fallback into the
                durable store. Requires `Authorization: Bearer <CRON_SECRET>`; when no secret
                is configured every call is rejected.
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from api.dependencies import get_services
from config.logging_config import get_logger
from core.bootstrap import AppServices

logger = get_logger(__name__)

router = APIRouter()


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


@router.post("/cron")
async def run_cron(
    authorization: Optional[str] = Header(default=None),
    services: AppServices = Depends(get_services),
):
    if not is_authorized(authorization, services.cron_secret):
        logger.warning("[run_cron] Rejected cron call with missing or invalid secret")
        return JSONResponse(content={"error": "Unauthorized"}, status_code=401)

    try:
        report = await services.thread_store.replay_fallback()
    except Exception as e:
        logger.error(f"[run_cron] Cron job failed: {e}", exc_info=True)
        return JSONResponse(content={"error": "Internal Server Error"}, status_code=500)

    return {
        "success": True,
        "durable_available": report.durable_available,
        "replayed": report.replayed,
        "failed": report.failed,
        "remaining": report.remaining,
    }
