from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from typing import Optional
from wa_dashboard.database.message_store import MessageStore, get_message_store
from wa_dashboard.services.human_gate import check_human_active
from wa_dashboard.utils.exceptions import StoreError
from wa_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["automation"])


@router.get("/check-human")
def check_human(
    phone: Optional[str] = None,
    hours: Optional[float] = Query(None, gt=0),
    store: MessageStore = Depends(get_message_store)
):
    """Tell an automation agent whether a human replied to this number recently."""
    logger.info(f"Check-human called for: {phone}")

    if not phone or not phone.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Phone number is required as query parameter",
                "humanActive": False,
                "example": "Use: /check-human?phone=254768322488"
            }
        )

    try:
        activity = check_human_active(store, phone, threshold_hours=hours)
    except StoreError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": "Failed to check conversation status", "humanActive": False}
        )

    return {
        "phoneNumber": activity.phone_number,
        "humanActive": activity.human_active,
        "lastHumanResponseTime": activity.last_human_response_time.isoformat()
        if activity.last_human_response_time else None,
        "hoursRemaining": activity.hours_remaining,
        "message": activity.message
    }
