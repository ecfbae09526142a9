from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID


class WebhookLogBase(BaseModel):
    """Base webhook log model with common fields."""
    event_type: str = Field(..., description="Event type: change field, 'message_received', 'status_update', 'error'")
    payload: Dict[str, Any] = Field(..., description="Raw webhook payload or an error summary")
    processed: bool = Field(False, description="Whether the event was fully processed")
    error: Optional[str] = Field(None, description="Error text when processing failed")


class WebhookLogCreate(WebhookLogBase):
    """Model for appending a webhook log row."""
    pass


class WebhookLog(WebhookLogBase):
    """Complete webhook log model including database fields."""
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
