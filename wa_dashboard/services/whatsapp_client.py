import time
import requests
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore, normalize_phone
from wa_dashboard.models.message import MessageCreate
from wa_dashboard.utils.exceptions import ConfigurationError, ProviderError, StoreError, ValidationError
from wa_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


def _messages_url(phone_number_id: str) -> str:
    settings = get_settings()
    return f"{GRAPH_API_URL}/{settings.whatsapp_api_version}/{phone_number_id}/messages"


def _require_credentials() -> Dict[str, str]:
    settings = get_settings()
    if not settings.whatsapp_phone_number_id:
        raise ConfigurationError("WHATSAPP_PHONE_NUMBER_ID")
    if not settings.whatsapp_access_token:
        raise ConfigurationError("WHATSAPP_ACCESS_TOKEN")
    return {
        "phone_number_id": settings.whatsapp_phone_number_id,
        "access_token": settings.whatsapp_access_token,
    }


def build_text_payload(to: str, text: str) -> Dict[str, Any]:
    """Build the Graph API envelope for a plain text message."""
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "text",
        "text": {
            "preview_url": False,
            "body": text
        }
    }


def _post_to_provider(url: str, access_token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """POST a payload to the Graph API and return the decoded JSON response."""
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json"
    }

    try:
        response = requests.post(url,
                                 headers=headers,
                                 json=payload,
                                 timeout=get_settings().whatsapp_request_timeout)
    except requests.RequestException as e:
        logger.error(f"WhatsApp API request failed: {str(e)}")
        raise ProviderError(f"WhatsApp API unreachable: {str(e)}")

    try:
        data = response.json()
    except ValueError:
        logger.error(f"WhatsApp API returned non-JSON response: {response.text}")
        raise ProviderError("Malformed response from WhatsApp API")

    if not response.ok:
        logger.error(f"WhatsApp API error: {data}")
        error = data.get("error") if isinstance(data, dict) else None
        message = (error or {}).get("message") or "Failed to send message"
        raise ProviderError(message, details=error)

    if not isinstance(data, dict):
        raise ProviderError("Malformed response from WhatsApp API")

    return data


def _response_time_ms(store: MessageStore, phone_number: str, sent_at: datetime) -> Optional[int]:
    try:
        last_inbound = store.latest_inbound(phone_number)
    except StoreError:
        logger.warning(f"Could not measure response time for {phone_number}")
        return None
    if last_inbound is None:
        return None
    return int((sent_at - last_inbound.timestamp).total_seconds() * 1000)


def send_message(store: MessageStore,
                 to: Optional[str],
                 text: Optional[str],
                 is_ai_response: bool = False) -> Dict[str, Any]:
    """
    Send a WhatsApp text message and record it as an outbound message.

    Args:
        store: MessageStore the outbound row is written to
        to: Recipient phone number, '+' and spaces allowed
        text: Message body
        is_ai_response: Whether automation produced this message

    Returns:
        The raw Graph API response.

    Raises:
        ValidationError: recipient or body missing
        ConfigurationError: WhatsApp credentials missing
        ProviderError: the Graph API rejected the request or was unreachable
        StoreError: the message was sent but could not be recorded
    """
    if not to or not to.strip() or not text or not text.strip():
        raise ValidationError("Missing required fields: to, body")

    credentials = _require_credentials()
    clean_to = normalize_phone(to)
    if not clean_to:
        raise ValidationError("Missing required fields: to, body")

    data = _post_to_provider(_messages_url(credentials["phone_number_id"]),
                             credentials["access_token"],
                             build_text_payload(clean_to, text))
    logger.info(f"Message sent to {clean_to}")

    message_id = (data.get("messages") or [{}])[0].get("id") or f"msg_{int(time.time() * 1000)}"
    sent_at = datetime.now(timezone.utc)

    store.insert_message(MessageCreate(
        message_id=message_id,
        phone_number=clean_to,
        from_number=credentials["phone_number_id"],
        to_number=clean_to,
        body=text,
        direction="outbound",
        status="sent",
        timestamp=sent_at,
        message_type="text",
        is_ai_response=is_ai_response,
        response_time_ms=_response_time_ms(store, clean_to, sent_at),
        metadata=data
    ))

    return data
