"""
Conversation grouping and dashboard analytics.

Everything here is a pure function of a message list plus explicit filter,
sort and clock parameters, so refreshes can be repeated or overlapped freely.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore
from wa_dashboard.models.conversation import (
    Analytics, Conversation, ReplyKind, SortOrder, TimeFilter
)
from wa_dashboard.models.message import Message
from wa_dashboard.services.human_gate import hours_remaining

CUSTOMER_SERVICE_WINDOW = timedelta(hours=24)
AUTOMATED_REPLY_THRESHOLD = timedelta(seconds=30)

TIME_FILTER_HOURS = {
    "4h": 4,
    "8h": 8,
    "24h": 24,
}

TIME_FILTER_LABELS = {
    "all": "All conversations",
    "4h": "Last 4 hours",
    "8h": "Last 8 hours",
    "24h": "Last 24 hours",
    "old": "Older than 24h",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def counterparty_key(message: Message) -> str:
    """Sender for inbound messages, recipient for outbound ones."""
    return message.from_number if message.direction == "inbound" else message.to_number


# ======================================================================
# Reply Classification
# ======================================================================
def response_time(messages: List[Message], index: int) -> Optional[timedelta]:
    """
    Latency of an outbound reply: the gap to the next-older message when that
    one is inbound. `messages` must be sorted newest first.
    """
    message = messages[index]
    if message.direction != "outbound" or index + 1 >= len(messages):
        return None
    previous = messages[index + 1]
    if previous.direction != "inbound":
        return None
    return message.timestamp - previous.timestamp


def classify_reply(messages: List[Message], index: int) -> Optional[ReplyKind]:
    """
    Classify an outbound message as automated or human-authored.

    A recorded is_ai_response flag wins. Legacy rows without the flag fall
    back to latency: replies under 30s to an inbound message count as
    automated, everything else (business-initiated included) as human.
    Returns None for inbound messages.
    """
    message = messages[index]
    if message.direction != "outbound":
        return None
    if message.is_ai_response is not None:
        return "automated" if message.is_ai_response else "human"

    latency = response_time(messages, index)
    if latency is not None and latency < AUTOMATED_REPLY_THRESHOLD:
        return "automated"
    return "human"


# ======================================================================
# Grouping
# ======================================================================
def is_outside_window(conversation_last: Message, now: datetime) -> bool:
    """True when the customer's last message is older than the 24h service window."""
    return (conversation_last.direction == "inbound"
            and now - conversation_last.timestamp > CUSTOMER_SERVICE_WINDOW)


def is_human_active(messages: List[Message], now: datetime, threshold_hours: float) -> bool:
    for index, message in enumerate(messages):
        if classify_reply(messages, index) == "human":
            return hours_remaining(message.timestamp, now, threshold_hours) > 0
    return False


def group_conversations(messages: List[Message],
                        now: Optional[datetime] = None,
                        threshold_hours: Optional[float] = None) -> List[Conversation]:
    """Partition messages by counterparty, newest conversation first."""
    now = now or _utcnow()
    if threshold_hours is None:
        threshold_hours = get_settings().human_active_threshold_hours

    groups: Dict[str, List[Message]] = {}
    for message in messages:
        groups.setdefault(counterparty_key(message), []).append(message)

    conversations = []
    for phone_number, group in groups.items():
        ordered = sorted(group, key=lambda m: m.timestamp, reverse=True)
        conversations.append(Conversation(
            phone_number=phone_number,
            messages=ordered,
            last_message=ordered[0],
            outside_window=is_outside_window(ordered[0], now),
            human_active=is_human_active(ordered, now, threshold_hours)
        ))

    conversations.sort(key=lambda c: c.last_message.timestamp, reverse=True)
    return conversations


def list_conversations(store: MessageStore,
                       limit: Optional[int] = None,
                       now: Optional[datetime] = None) -> List[Conversation]:
    """Read recent messages from the store and group them into conversations."""
    limit = limit or get_settings().message_fetch_limit
    return group_conversations(store.fetch_messages(limit=limit), now=now)


# ======================================================================
# Filtering / Sorting
# ======================================================================
def matches_time_filter(conversation: Conversation, time_filter: TimeFilter, now: datetime) -> bool:
    hours = (now - conversation.last_message.timestamp) / timedelta(hours=1)
    if time_filter == "old":
        return hours > 24
    if time_filter in TIME_FILTER_HOURS:
        return hours <= TIME_FILTER_HOURS[time_filter]
    return True


def matches_search(conversation: Conversation, search: str) -> bool:
    needle = search.lower()
    if needle in conversation.phone_number.lower():
        return True
    return any(needle in (m.body or "").lower() for m in conversation.messages)


def filter_conversations(conversations: List[Conversation],
                         time_filter: TimeFilter = "all",
                         search: str = "",
                         sort: SortOrder = "newest",
                         now: Optional[datetime] = None) -> List[Conversation]:
    """Derive the visible conversation list; the input list is left untouched."""
    now = now or _utcnow()
    filtered = [c for c in conversations if matches_time_filter(c, time_filter, now)]
    if search:
        filtered = [c for c in filtered if matches_search(c, search)]

    # "active" ranks by hours since last message, which is newest-first
    return sorted(filtered,
                  key=lambda c: c.last_message.timestamp,
                  reverse=sort != "oldest")


# ======================================================================
# Analytics
# ======================================================================
def format_response_time(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def compute_analytics(conversations: List[Conversation], now: Optional[datetime] = None) -> Analytics:
    now = now or _utcnow()
    last_24h = now - timedelta(hours=24)
    last_7d = now - timedelta(days=7)

    analytics = Analytics(total_conversations=len(conversations))
    total_response = timedelta(0)
    response_count = 0

    for conversation in conversations:
        messages = conversation.messages
        for index, message in enumerate(messages):
            analytics.total_messages += 1
            if message.timestamp > last_24h:
                analytics.messages_last_24h += 1
            if message.timestamp > last_7d:
                analytics.messages_last_7d += 1

            kind = classify_reply(messages, index)
            if kind == "automated":
                analytics.ai_messages += 1
            elif kind == "human":
                analytics.human_messages += 1

            latency = response_time(messages, index)
            if latency is not None:
                total_response += latency
                response_count += 1

    if response_count:
        analytics.avg_response_time_ms = total_response / timedelta(milliseconds=1) / response_count
    analytics.avg_response_time = format_response_time(analytics.avg_response_time_ms)
    return analytics
