from fastapi import APIRouter, Depends, Query
from typing import Optional
from wa_dashboard.database.message_store import MessageStore, get_message_store
from wa_dashboard.models.conversation import SortOrder, TimeFilter
from wa_dashboard.services.conversation_aggregator import (
    TIME_FILTER_LABELS, compute_analytics, filter_conversations, list_conversations
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("")
def get_conversations(
    time_filter: TimeFilter = Query("all", alias="filter"),
    search: str = "",
    sort: SortOrder = "newest",
    limit: Optional[int] = Query(None, ge=1, le=1000),
    store: MessageStore = Depends(get_message_store)
):
    """Conversations grouped by counterparty, filtered and sorted for display."""
    conversations = list_conversations(store, limit=limit)
    visible = filter_conversations(conversations, time_filter=time_filter, search=search, sort=sort)
    return {
        "conversations": [c.model_dump(mode="json") for c in visible],
        "filter": TIME_FILTER_LABELS[time_filter],
        "total": len(conversations),
        "showing": len(visible)
    }


@router.get("/analytics")
def get_analytics(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    store: MessageStore = Depends(get_message_store)
):
    """Message volume and reply-latency rollup across all conversations."""
    return compute_analytics(list_conversations(store, limit=limit)).model_dump()
