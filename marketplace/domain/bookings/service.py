"""Booking service - Client-side booking operations (checkout, listing, cancellation)"""

import logging

from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ...models import Booking, BookingStatus, PaymentStatus
from ...services.notification_service import Notification, NotificationDispatcher
from ...shared.validators import validate_booking_date, validate_time_slot
from .pricing import compute_total, to_money
from .repository import BookingRepository
from .schemas import BookingItemCreate
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)

# Clients may not cancel once work has started or finished
NON_CANCELLABLE_STATUSES = frozenset({BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED})


class BookingService:
    """Service layer for client booking business logic"""

    def __init__(self, db: Session, notifier: NotificationDispatcher):
        self.db = db
        self.repo = BookingRepository()
        self.state_machine = BookingStateMachine(db)
        self.notifier = notifier

    def create_bookings(self, client_id: int, items: list[BookingItemCreate]) -> list[Booking]:
        """
        Cart checkout: one PENDING booking per requested service item.

        The whole cart is written in one transaction; any invalid item rejects
        the checkout.
        """
        if not items:
            raise ValidationError("At least one service is required")

        client = self.repo.get_client(self.db, client_id)
        if not client:
            raise NotFoundError("Client not found")

        logger.info(f"📥 Creating {len(items)} booking(s) for client_id: {client_id}")

        created = []
        with unit_of_work(self.db):
            for item in items:
                service = self.repo.get_service(self.db, item.serviceId)
                if not service or not service.is_active:
                    raise NotFoundError(f"Service not found: {item.serviceId}")
                if service.organization_id is None:
                    raise ValidationError(f'Service "{service.name}" is not properly linked to an organization.')

                try:
                    booking_date = validate_booking_date(item.bookingDate)
                    booking_time = validate_time_slot(item.bookingTime)
                except ValueError as e:
                    raise ValidationError(str(e)) from None

                extra_tasks = [
                    {"description": task.description, "price": to_money(task.extraPrice)}
                    for task in item.extraTasks
                ]
                total_price = compute_total(service.base_price, extra_tasks)

                booking = self.repo.create_booking(
                    self.db,
                    extra_tasks,
                    client_id=client_id,
                    organization_id=service.organization_id,
                    service_id=service.id,
                    booking_date=booking_date,
                    booking_time=booking_time,
                    address=item.address,
                    latitude=item.location.lat if item.location else None,
                    longitude=item.location.lng if item.location else None,
                    status=BookingStatus.PENDING,
                    payment_status=PaymentStatus.UNPAID,
                    total_price=total_price,
                )
                created.append(booking)

        logger.info(f"✅ Created bookings {[b.id for b in created]} for client {client_id}")
        return created

    def get_client_bookings(self, client_id: int) -> list[Booking]:
        return self.repo.get_client_bookings(self.db, client_id)

    def get_client_booking(self, client_id: int, booking_id: int) -> Booking:
        booking = self.repo.get_booking_detail(self.db, booking_id)
        if not booking or booking.client_id != client_id:
            raise NotFoundError("Booking not found")
        return booking

    def cancel_booking(self, client_id: int, booking_id: int) -> Booking:
        """Cancel a booking the client owns; releases its agent if one was assigned"""
        booking = self.repo.get_booking_detail(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.client_id != client_id:
            logger.warning(f"⚠️ Client {client_id} attempted to cancel booking {booking_id} they do not own")
            raise ForbiddenError("Unauthorized action")
        if booking.status in NON_CANCELLABLE_STATUSES:
            raise InvalidStateError("Cannot cancel active or completed booking")

        agent = booking.agent
        with unit_of_work(self.db):
            self.state_machine.transition(booking, BookingStatus.CANCELLED)

        notifications = [
            Notification(
                to=booking.client.email,
                subject="Booking Cancelled",
                message=f"Booking {booking.id} has been cancelled.",
                notification_type="booking_cancelled",
            )
        ]
        if agent is not None:
            notifications.append(
                Notification(
                    to=agent.email,
                    subject="Job Cancelled",
                    message=f"Hello {agent.name}, booking {booking.id} was cancelled by the client.",
                    notification_type="job_cancelled",
                )
            )
        self.notifier.dispatch(notifications)
        return booking
