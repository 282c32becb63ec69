"""
api/send.py

Direct outbound send, bypassing the triage pipeline.

Endpoints:
  - POST /whatsapp/send: Sends `content` as the agent, to `to` for individual threads or to
                         `thread_id` for group threads.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.dependencies import get_services
from config.logging_config import get_logger
from core.bootstrap import AppServices
from shared.models import ThreadType

logger = get_logger(__name__)

router = APIRouter()


class SendMessageRequest(BaseModel):
    content: str
    to: Optional[str] = None
    thread_id: Optional[str] = None
    thread_type: ThreadType = ThreadType.INDIVIDUAL


@router.post("/whatsapp/send")
async def whatsapp_send(
    request: SendMessageRequest,
    services: AppServices = Depends(get_services),
):
    try:
        sent = await services.outbound.send_text(
            request.content,
            request.thread_type,
            thread_id=request.thread_id,
            sender_number=request.to,
        )
    except Exception as e:
        logger.error(f"[whatsapp_send] Error sending message: {e}", exc_info=True)
        return JSONResponse(content={"error": "Failed to send message"}, status_code=500)

    logger.info(
        f"[whatsapp_send] Sent {sent} message(s)",
        extra={'thread_id': request.thread_id or 'no_thread', 'thread_type': request.thread_type.value}
    )
    return {"success": True}
