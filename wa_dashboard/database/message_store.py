from datetime import datetime
from typing import Any, Dict, List, Optional
from wa_dashboard.database.supabase_client import get_supabase_client
from wa_dashboard.models.message import Message, MessageCreate
from wa_dashboard.models.webhook_log import WebhookLogCreate
from wa_dashboard.utils.exceptions import StoreError
from wa_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

MESSAGES_TABLE = "messages"
WEBHOOK_LOGS_TABLE = "webhook_logs"


def normalize_phone(phone: str) -> str:
    """Strip '+' signs and whitespace from a phone identifier."""
    return "".join(phone.replace("+", "").split())


class MessageStore:
    """Read/write contract over the messages and webhook_logs tables."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        # Resolved on first use so missing credentials surface inside the caller
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Store error while trying to {action}: {str(e)}")
            raise StoreError(f"Failed to {action}")

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def insert_message(self, message: MessageCreate) -> Optional[Message]:
        """
        Insert a message, ignoring redelivery of an existing message_id.

        Returns:
            The stored Message, or None when the message_id already existed.
        """
        query = self.client.table(MESSAGES_TABLE).upsert(
            message.to_row(), on_conflict="message_id", ignore_duplicates=True)
        result = self._execute(query, "store message")
        if not result.data:
            logger.info(f"Message {message.message_id} already stored, skipping")
            return None
        return Message(**result.data[0])

    def update_status(self, message_id: str, status: str) -> int:
        """Set the delivery status of a message. Returns the number of rows updated."""
        query = (self.client.table(MESSAGES_TABLE)
                 .update({"status": status})
                 .eq("message_id", message_id))
        result = self._execute(query, f"update status of {message_id}")
        return len(result.data or [])

    def mark_read(self, message_id: str) -> int:
        query = (self.client.table(MESSAGES_TABLE)
                 .update({"is_read": True})
                 .eq("message_id", message_id))
        result = self._execute(query, f"mark {message_id} as read")
        return len(result.data or [])

    def fetch_messages(self,
                       phone_number: Optional[str] = None,
                       limit: int = 1000) -> List[Message]:
        """Fetch messages newest first, optionally for a single counterparty."""
        query = (self.client.table(MESSAGES_TABLE)
                 .select("*")
                 .order("timestamp", desc=True)
                 .limit(limit))
        if phone_number:
            query = query.eq("phone_number", normalize_phone(phone_number))

        result = self._execute(query, "fetch messages")
        return [Message(**row) for row in result.data or []]

    def latest_human_outbound(self, phone_number: str, since: datetime) -> Optional[Message]:
        """Most recent human-authored outbound message at or after `since`."""
        query = (self.client.table(MESSAGES_TABLE)
                 .select("*")
                 .eq("phone_number", phone_number)
                 .eq("direction", "outbound")
                 .eq("is_ai_response", False)
                 .gte("timestamp", since.isoformat())
                 .order("timestamp", desc=True)
                 .limit(1))
        result = self._execute(query, "check conversation status")
        return Message(**result.data[0]) if result.data else None

    def latest_inbound(self, phone_number: str) -> Optional[Message]:
        query = (self.client.table(MESSAGES_TABLE)
                 .select("*")
                 .eq("phone_number", phone_number)
                 .eq("direction", "inbound")
                 .order("timestamp", desc=True)
                 .limit(1))
        result = self._execute(query, "fetch last inbound message")
        return Message(**result.data[0]) if result.data else None

    # ------------------------------------------------------------------
    # Webhook audit log
    # ------------------------------------------------------------------
    def insert_webhook_log(self,
                           event_type: str,
                           payload: Dict[str, Any],
                           processed: bool = False,
                           error: Optional[str] = None) -> None:
        log = WebhookLogCreate(event_type=event_type,
                               payload=payload,
                               processed=processed,
                               error=error)
        query = self.client.table(WEBHOOK_LOGS_TABLE).insert(log.model_dump())
        self._execute(query, "write webhook log")

    def ping(self) -> None:
        """Cheap round trip used by the database health check."""
        self._execute(self.client.table(MESSAGES_TABLE).select("id").limit(1), "reach database")


def get_message_store() -> MessageStore:
    """FastAPI dependency returning a store bound to the cached Supabase client."""
    return MessageStore()
