import logging
from typing import Optional, Dict, Any
from wa_dashboard.config import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

logger = logging.getLogger(__name__)


def log_webhook_event(store,
                      event_type: str,
                      payload: Dict[str, Any],
                      processed: bool = False,
                      error: Optional[str] = None) -> None:
    """
    Log a webhook event to both console and the webhook_logs audit table.

    Never raises: the webhook path must keep acknowledging the provider
    even when the audit write fails.

    Args:
        store: MessageStore used for the audit insert
        event_type: Event type (e.g. 'messages', 'message_received', 'status_update', 'error')
        payload: Raw provider payload, or an error summary
        processed: Whether the event was fully processed
        error: Optional error text
    """
    try:
        # Log to console
        if error:
            logger.error(f"[webhook:{event_type}] {error}")
        else:
            logger.info(f"[webhook:{event_type}] processed={processed}")

        # Log to database
        store.insert_webhook_log(event_type, payload, processed=processed, error=error)

    except Exception as e:
        logger.error(f"Failed to log webhook event: {str(e)}")


def get_logger(name: str):
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
