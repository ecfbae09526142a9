import json
from datetime import datetime, timezone
from fastapi import Request
from fastapi.responses import PlainTextResponse, JSONResponse
from typing import Dict, Any, Optional, List
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore, normalize_phone
from wa_dashboard.models.message import Message, MessageCreate
from wa_dashboard.utils.exceptions import StoreError
from wa_dashboard.utils.logger import log_webhook_event, get_logger

logger = get_logger(__name__)

MEDIA_PLACEHOLDERS = {
    "image": "[Image]",
    "video": "[Video]",
    "document": "[Document]",
}


# ======================================================================
# Payload Helpers
# ======================================================================
def first_change(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return entry[0].changes[0] of a webhook payload, or an empty dict."""
    entries = data.get("entry") or [{}]
    changes = (entries[0] or {}).get("changes") or [{}]
    return changes[0] or {}


def extract_content(message: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Extract body, media reference and caption according to message type."""
    msg_type = message.get("type")
    content = {
        "body": "",
        "media_url": None,
        "media_mime_type": None,
        "caption": None
    }

    if msg_type == "text":
        content["body"] = (message.get("text") or {}).get("body", "")

    elif msg_type in MEDIA_PLACEHOLDERS:
        media = message.get(msg_type) or {}
        content["media_url"] = media.get("id")
        content["media_mime_type"] = media.get("mime_type")
        content["caption"] = media.get("caption")
        content["body"] = content["caption"] or MEDIA_PLACEHOLDERS[msg_type]

    elif msg_type == "audio":
        media = message.get("audio") or {}
        content["media_url"] = media.get("id")
        content["media_mime_type"] = media.get("mime_type")
        content["body"] = "[Audio]"

    else:
        content["body"] = f"[{msg_type}]"

    return content


def parse_timestamp(value: Any) -> datetime:
    """Convert a provider timestamp (epoch seconds) to an aware datetime."""
    if value in (None, ""):
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def build_inbound_message(data: Dict[str, Any]) -> Optional[MessageCreate]:
    """Build the inbound message row for the first message entry of a payload."""
    value = first_change(data).get("value") or {}
    messages = value.get("messages") or []
    if not messages:
        return None

    message = messages[0]
    sender = normalize_phone(message["from"])
    content = extract_content(message)

    return MessageCreate(
        message_id=message["id"],
        phone_number=sender,
        from_number=sender,
        to_number=(value.get("metadata") or {}).get("phone_number_id", ""),
        direction="inbound",
        status="received",
        timestamp=parse_timestamp(message.get("timestamp")),
        message_type=message.get("type") or "text",
        is_ai_response=False,
        metadata=data,
        **content
    )


# ======================================================================
# Store Operations
# ======================================================================
def store_inbound_message(store: MessageStore, data: Dict[str, Any]) -> Optional[Message]:
    """Persist the first inbound message of a payload. None when absent or already stored."""
    message = build_inbound_message(data)
    if message is None:
        return None
    return store.insert_message(message)


def apply_status_updates(store: MessageStore, statuses: List[Dict[str, Any]]) -> int:
    """Apply delivery status updates; a failed update does not stop the others."""
    updated = 0
    for status_update in statuses:
        message_id = status_update.get("id")
        new_status = status_update.get("status")
        if not message_id or not new_status:
            logger.warning(f"Skipping malformed status update: {status_update}")
            continue

        try:
            store.update_status(message_id, new_status)
            updated += 1
            logger.info(f"Message {message_id} status updated to {new_status}")
        except StoreError as e:
            logger.error(f"Error updating message status for {message_id}: {e.detail}")

    return updated


# ======================================================================
# Webhook Verification (GET)
# ======================================================================
async def verify_webhook(request: Request):
    """Verify webhook setup from Meta."""
    params = request.query_params
    mode = params.get("hub.mode")
    token = params.get("hub.verify_token")
    challenge = params.get("hub.challenge")
    verify_token = get_settings().webhook_verify_token

    logger.info(f"Webhook verification request: mode={mode}, token={'present' if token else 'missing'}")

    if verify_token and mode == "subscribe" and token == verify_token:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(content=challenge or "", status_code=200)

    logger.error("Webhook verification failed")
    return PlainTextResponse(content="Forbidden", status_code=403)


# ======================================================================
# Main Webhook Handler (POST)
# ======================================================================
def handle_webhook(store: MessageStore, body: bytes):
    """
    Handle incoming WhatsApp webhooks.

    Makes blocking store calls, so the route runs it in the threadpool.
    Always acknowledges with 200 so Meta does not redeliver; failures are
    recorded in webhook_logs and reported as {"status": "error"}.
    """
    try:
        data = json.loads(body)
        logger.info(f"Webhook received: {json.dumps(data, indent=2)}")

        change = first_change(data)
        log_webhook_event(store, change.get("field") or "unknown", data, processed=False)

        value = change.get("value") or {}
        messages = value.get("messages") or []
        statuses = value.get("statuses") or []

        if messages:
            logger.info("Processing incoming message...")
            stored = store_inbound_message(store, data)
            if stored:
                logger.info(f"Message stored successfully: {stored.message_id}")
                log_webhook_event(store, "message_received", data, processed=True)

        elif statuses:
            logger.info("Processing status update...")
            apply_status_updates(store, statuses)
            log_webhook_event(store, "status_update", data, processed=True)

        return JSONResponse(status_code=200, content={"status": "ok"})

    except Exception as e:
        error = getattr(e, "detail", None) or str(e) or e.__class__.__name__
        logger.error(f"Webhook processing error: {error}")
        log_webhook_event(store, "error", {"error": error}, processed=False, error=error)
        return JSONResponse(status_code=200, content={"status": "error"})
