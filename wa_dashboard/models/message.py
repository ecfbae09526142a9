from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime
from uuid import UUID


class MessageBase(BaseModel):
    """Base message model with common fields."""
    message_id: str = Field(..., description="Provider message id (wamid.*) or a generated msg_<ms> token")
    phone_number: str = Field(..., description="Normalized counterparty phone number")
    from_number: str = Field(..., description="Sender identifier")
    to_number: str = Field(..., description="Recipient identifier")
    body: Optional[str] = Field(None, description="Text body or a placeholder such as '[Image]'")
    direction: Literal["inbound", "outbound"] = Field(..., description="Message direction: 'inbound' or 'outbound'")
    status: Optional[str] = Field(None, description="sent / delivered / read / failed / received")
    timestamp: datetime = Field(..., description="Event time reported by the provider")
    message_type: Optional[str] = Field("text", description="Message type: 'text', 'image', 'video', 'audio', 'document'")
    media_url: Optional[str] = Field(None, description="Provider media id for media messages")
    media_mime_type: Optional[str] = None
    caption: Optional[str] = None
    is_ai_response: Optional[bool] = Field(None, description="True when automation produced the message; null on legacy rows")
    response_time_ms: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Raw provider payload; null on legacy rows")


class MessageCreate(MessageBase):
    """Model for inserting a new message row."""

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Message(MessageBase):
    """Complete message model including database fields."""
    id: Optional[UUID] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SendMessageRequest(BaseModel):
    """Body of POST /messages/send. Presence of fields is checked by the provider client."""
    to: Optional[str] = None
    body: Optional[str] = None
    isAiResponse: Optional[bool] = False


class FormattedMessage(BaseModel):
    """Message shape served to the dashboard."""
    sid: str
    from_: str = Field(..., alias="from")
    to: str
    body: str
    date_sent: datetime
    status: str
    direction: Literal["inbound", "outbound-api"]
    message_type: str
    is_ai_response: Optional[bool] = None

    class Config:
        populate_by_name = True

    @classmethod
    def from_message(cls, message: Message) -> "FormattedMessage":
        return cls(
            sid=message.message_id,
            from_=message.from_number,
            to=message.to_number,
            body=message.body or "",
            date_sent=message.timestamp,
            status=message.status or "delivered",
            direction="inbound" if message.direction == "inbound" else "outbound-api",
            message_type=message.message_type or "text",
            is_ai_response=message.is_ai_response,
        )
