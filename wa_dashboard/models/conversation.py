from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from wa_dashboard.models.message import Message


TimeFilter = Literal["all", "4h", "8h", "24h", "old"]
SortOrder = Literal["newest", "oldest", "active"]
ReplyKind = Literal["automated", "human"]


class Conversation(BaseModel):
    """Messages exchanged with one counterparty, newest first."""
    phone_number: str
    messages: List[Message]
    last_message: Message
    outside_window: bool = Field(False, description="Last message is inbound and older than 24h")
    human_active: bool = Field(False, description="A human replied within the gate threshold")


class Analytics(BaseModel):
    """Rollup over a conversation list."""
    total_conversations: int = 0
    total_messages: int = 0
    ai_messages: int = 0
    human_messages: int = 0
    avg_response_time_ms: float = 0
    avg_response_time: str = "0s"
    messages_last_24h: int = 0
    messages_last_7d: int = 0


class HumanActivity(BaseModel):
    """Result of the human-activity gate for one counterparty."""
    phone_number: str
    human_active: bool
    last_human_response_time: Optional[datetime] = None
    hours_remaining: float = 0
    message: str
