from .message import Message, MessageCreate, SendMessageRequest, FormattedMessage
from .webhook_log import WebhookLog, WebhookLogCreate
from .conversation import Conversation, Analytics, HumanActivity

__all__ = [
    "Message", "MessageCreate", "SendMessageRequest", "FormattedMessage",
    "WebhookLog", "WebhookLogCreate",
    "Conversation", "Analytics", "HumanActivity"
]
