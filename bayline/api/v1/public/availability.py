from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bayline.db.session import get_db
from bayline.schemas.availability import AvailabilityRequest, AvailabilityResponse
from bayline.services.availability import compute_blocked_starts

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.post("", response_model=AvailabilityResponse)
def get_blocked_starts(
    data: AvailabilityRequest,
    db: Session = Depends(get_db),
):
    """
    Start minutes (from venue-local midnight) that cannot be booked on one day.

    Read-only snapshot: a start reported free here can still be lost before
    the booking is submitted.
    """
    blocked = compute_blocked_starts(db, data)
    return AvailabilityResponse(date_key=data.date_key, blocked_start_mins=blocked)
