"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Booking, Client, ExtraTask, Service


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_booking_detail(db: Session, booking_id: int) -> Optional[Booking]:
        """Booking with client, service and agent loaded for notification content"""
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.client),
                joinedload(Booking.service),
                joinedload(Booking.agent),
                selectinload(Booking.extra_tasks),
            )
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_booking_for_agent(db: Session, booking_id: int, agent_id: int) -> Optional[Booking]:
        """Get a booking only if it is bound to the given agent"""
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.agent_id == agent_id)
            .first()
        )

    @staticmethod
    def get_client_bookings(db: Session, client_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.service),
                joinedload(Booking.organization),
                joinedload(Booking.agent),
                selectinload(Booking.extra_tasks),
            )
            .filter(Booking.client_id == client_id)
            .order_by(Booking.booking_date.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def get_organization_bookings(db: Session, organization_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.client),
                joinedload(Booking.service),
                joinedload(Booking.agent),
                selectinload(Booking.extra_tasks),
            )
            .filter(Booking.organization_id == organization_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def create_booking(db: Session, extra_tasks: list[dict], **booking_data) -> Booking:
        booking = Booking(**booking_data)
        booking.extra_tasks = [ExtraTask(**task) for task in extra_tasks]
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_client(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def find_extra_task(booking: Booking, task_id: int) -> Optional[ExtraTask]:
        return next((task for task in booking.extra_tasks if task.id == task_id), None)
