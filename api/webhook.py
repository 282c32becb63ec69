"""
api/webhook.py

Inbound webhook of the messaging gateway.

Endpoints:
  - POST /whatsapp/incoming: Receives one WhatsApp message event, runs it through the
                             ingestion pipeline and acknowledges it. A malformed body is
                             rejected by FastAPI's validation with HTTP 422; a fatal failure
                             inside the pipeline is reported with HTTP 500 so the gateway
                             sees that the message was not handled.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_services
from config.logging_config import get_logger
from core.bootstrap import AppServices
from shared.models import IncomingWebhookPayload

logger = get_logger(__name__)

router = APIRouter()


@router.post("/whatsapp/incoming")
async def whatsapp_incoming(
    payload: IncomingWebhookPayload,
    services: AppServices = Depends(get_services),
):
    """
    Hand the validated payload to `IncomingMessageHandler.handle_incoming`.

    Returns:
        JSONResponse: `{"success": true}` once the message is stored and (for user messages)
            answered, or HTTP 500 `{"success": false, "error": "Internal server error"}`.
    """
    log = logger.bind(thread_id=payload.thread_id)
    log.info(
        f"[whatsapp_incoming] Webhook received message {payload.message_id}",
        extra={'thread_type': payload.thread_type.value, 'sender_number': payload.sender_number}
    )
    try:
        result = await services.handler.handle_incoming(payload)
    except Exception as e:
        log.error(f"[whatsapp_incoming] Failed to handle incoming message: {e}", exc_info=True)
        return JSONResponse(
            content={"success": False, "error": "Internal server error"},
            status_code=500,
        )

    log.info(
        "[whatsapp_incoming] Message handled",
        extra={
            'storage_result': result.storage.value,
            'intent': result.intent.value if result.intent else None,
            'dispatched': result.dispatched,
        }
    )
    return {"success": True}
