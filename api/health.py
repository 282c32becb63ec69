"""
Health endpoint.

Liveness check at "/health". Besides the static status and a UTC timestamp it reports which
storage backend new conversation writes go to ("durable" when Supabase credentials are
configured, "memory" otherwise) and how many threads are waiting for fallback replay.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import get_services
from core.bootstrap import AppServices
from version import __version__

router = APIRouter()


@router.get("/health")
def health(services: AppServices = Depends(get_services)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "storage": services.thread_store.mode,
        "pending_replay": len(services.thread_store.pending_replay),
    }
