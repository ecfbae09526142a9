from fastapi import APIRouter, Depends, Query
from typing import Optional
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore, get_message_store
from wa_dashboard.models.message import FormattedMessage, SendMessageRequest
from wa_dashboard.services.whatsapp_client import send_message
from wa_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("")
def get_messages(
    phone: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    store: MessageStore = Depends(get_message_store)
):
    """Get messages newest first, in the shape the dashboard renders."""
    logger.info("Fetching messages from database...")
    messages = store.fetch_messages(phone_number=phone,
                                    limit=limit or get_settings().message_fetch_limit)

    formatted = [
        FormattedMessage.from_message(m).model_dump(mode="json", by_alias=True)
        for m in messages
    ]
    logger.info(f"Fetched {len(formatted)} messages")
    return {"messages": formatted}


@router.post("/send")
def send(request: SendMessageRequest, store: MessageStore = Depends(get_message_store)):
    """Send a text message through the WhatsApp Cloud API."""
    logger.info(f"Sending WhatsApp message to {request.to} (isAiResponse={bool(request.isAiResponse)})")
    data = send_message(store, request.to, request.body, bool(request.isAiResponse))
    return {"message": data, "success": True}


@router.post("/{message_id}/read")
def mark_read(message_id: str, store: MessageStore = Depends(get_message_store)):
    """Mark a message as read on the dashboard."""
    updated = store.mark_read(message_id)
    return {"success": updated > 0, "message_id": message_id}
