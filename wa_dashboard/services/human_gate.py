from datetime import datetime, timedelta, timezone
from typing import Optional
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore, normalize_phone
from wa_dashboard.models.conversation import HumanActivity
from wa_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

HOUR = timedelta(hours=1)


def hours_remaining(last_human_response: datetime, now: datetime, threshold_hours: float) -> float:
    """Hours left in the human window opened at `last_human_response`, never negative."""
    hours_elapsed = (now - last_human_response) / HOUR
    return max(0.0, threshold_hours - hours_elapsed)


def activity_message(active: bool, remaining: float) -> str:
    if active:
        return f"Human is active - AI should wait {remaining:.1f} more hours"
    return "No human activity detected - AI can respond"


def check_human_active(store: MessageStore,
                       phone_number: str,
                       threshold_hours: Optional[float] = None,
                       now: Optional[datetime] = None) -> HumanActivity:
    """
    Decide whether a human agent replied to this counterparty recently.

    Looks for the newest outbound message with is_ai_response = false inside
    the trailing threshold window. Pure read; safe to poll.
    """
    if threshold_hours is None:
        threshold_hours = get_settings().human_active_threshold_hours
    now = now or datetime.now(timezone.utc)
    clean_phone = normalize_phone(phone_number)

    last_human = store.latest_human_outbound(clean_phone, since=now - threshold_hours * HOUR)

    active = False
    last_time = None
    remaining = 0.0
    if last_human is not None:
        last_time = last_human.timestamp
        remaining = hours_remaining(last_time, now, threshold_hours)
        active = remaining > 0
        logger.info(f"Human activity detected for {clean_phone} at {last_time.isoformat()}")

    return HumanActivity(
        phone_number=clean_phone,
        human_active=active,
        last_human_response_time=last_time,
        hours_remaining=round(remaining, 2),
        message=activity_message(active, remaining)
    )
