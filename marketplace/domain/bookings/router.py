"""Client booking router - FastAPI endpoints for cart checkout and booking management"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import Caller, Role, require_role
from ...database import get_db
from ...dependencies import get_notifier
from ...services.notification_service import NotificationDispatcher
from .schemas import BookingResponse, CartCheckoutRequest, booking_to_response
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client", tags=["Client Bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, notifier)


@router.post("/bookings", response_model=list[BookingResponse], status_code=status.HTTP_201_CREATED)
async def create_bookings(
    data: CartCheckoutRequest,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: BookingService = Depends(get_booking_service),
):
    """Checkout a cart: one PENDING booking per item"""
    bookings = service.create_bookings(caller.id, data.items)
    return [booking_to_response(b) for b in bookings]


@router.get("/bookings", response_model=list[BookingResponse])
async def get_my_bookings(
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: BookingService = Depends(get_booking_service),
):
    """Get the caller's bookings, newest date first"""
    return [booking_to_response(b) for b in service.get_client_bookings(caller.id)]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_my_booking(
    booking_id: int,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: BookingService = Depends(get_booking_service),
):
    return booking_to_response(service.get_client_booking(caller.id, booking_id))


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking that has not started yet"""
    booking = service.cancel_booking(caller.id, booking_id)
    return booking_to_response(booking)
