"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from ...models import Booking


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class ExtraTaskInput(BaseModel):
    """Line item supplied at checkout"""

    description: str = Field(min_length=1, max_length=500)
    extraPrice: Union[float, str] = 0


class BookingItemCreate(BaseModel):
    """One requested service in a cart"""

    serviceId: int
    bookingDate: str
    bookingTime: str
    extraTasks: list[ExtraTaskInput] = []
    address: Optional[str] = None
    location: Optional[Location] = None


class CartCheckoutRequest(BaseModel):
    items: list[BookingItemCreate]


class ExtraTaskRequest(BaseModel):
    """Schema for adding or updating an extra task on an assigned booking"""

    description: str = Field(min_length=1, max_length=500)
    price: Union[float, str]


class StatusUpdateRequest(BaseModel):
    status: str


class ExtraTaskResponse(BaseModel):
    id: int
    description: str
    price: float


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    clientId: int
    organizationId: int
    serviceId: int
    serviceName: Optional[str] = None
    agentId: Optional[int] = None
    agentName: Optional[str] = None
    bookingDate: date
    bookingTime: str
    address: Optional[str] = None
    status: str
    totalPrice: float
    paymentStatus: str
    extraTasks: list[ExtraTaskResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        clientId=booking.client_id,
        organizationId=booking.organization_id,
        serviceId=booking.service_id,
        serviceName=booking.service.name if booking.service else None,
        agentId=booking.agent_id,
        agentName=booking.agent.name if booking.agent else None,
        bookingDate=booking.booking_date,
        bookingTime=booking.booking_time,
        address=booking.address,
        status=booking.status.value,
        totalPrice=float(booking.total_price),
        paymentStatus=booking.payment_status.value,
        extraTasks=[
            ExtraTaskResponse(id=t.id, description=t.description, price=float(t.price))
            for t in booking.extra_tasks
        ],
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )
