from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.booking.api.deps import get_subscriptions_service
from src.booking.api.schemas import SessionResponse, AvailableSlotResponse, session_to_response
from src.booking.services.subscriptions_service import SubscriptionsService


router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("/booked", response_model=list[SessionResponse])
def booked_sessions(
    display_country: Optional[str] = None,
    svc: SubscriptionsService = Depends(get_subscriptions_service),
):
    """Будущие занятые слоты всех подтверждённых/активных подписок."""
    return [session_to_response(s, display_country) for s in svc.booked_sessions()]


@router.get("/available", response_model=list[AvailableSlotResponse])
def available_slots(
    start_date: str = Query(..., description="YYYY-MM-DD"),
    end_date: str = Query(..., description="YYYY-MM-DD"),
    display_country: Optional[str] = None,
    svc: SubscriptionsService = Depends(get_subscriptions_service),
):
    try:
        return svc.available_slots(start_date, end_date, display_country)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
