"""
Assignment Coordinator
Binds field agents to bookings and settles payment, keeping agent availability
in step with the booking lifecycle
"""

import logging

from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
)
from ...models import AgentStatus, Booking, BookingStatus, PaymentStatus, utcnow
from ...services.notification_service import Notification, NotificationDispatcher
from ..agents.repository import AgentRepository
from ..bookings.pricing import compute_total
from ..bookings.repository import BookingRepository
from ..bookings.state_machine import ASSIGNABLE_STATUSES, BookingStateMachine
from ..providers.repository import ProviderRepository

logger = logging.getLogger(__name__)


class AssignmentCoordinator:
    def __init__(self, db: Session, notifier: NotificationDispatcher):
        self.db = db
        self.agent_repo = AgentRepository()
        self.booking_repo = BookingRepository()
        self.provider_repo = ProviderRepository()
        self.state_machine = BookingStateMachine(db)
        self.notifier = notifier

    def assign(self, provider_id: int, booking_id: int, agent_id: int) -> dict:
        """
        Bind an agent to a booking of the provider's organization.

        The agent is claimed with a conditional FREE → BUSY write, so two
        concurrent assignments of one agent cannot both succeed. A different
        agent previously bound to the booking is released in the same
        transaction.
        """
        agent = self.agent_repo.get_agent_for_provider(self.db, agent_id, provider_id)
        if not agent:
            raise NotFoundError("Agent not found")

        booking = self.booking_repo.get_booking_detail(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")

        organization = self.provider_repo.get_organization_by_owner(self.db, provider_id)
        if not organization:
            raise NotFoundError("Organization not found")

        if booking.organization_id != organization.id:
            logger.warning(
                f"⚠️ Provider {provider_id} attempted to assign booking {booking_id} of another organization"
            )
            raise ForbiddenError("Unauthorized: This booking does not belong to your organization")

        if booking.status not in ASSIGNABLE_STATUSES:
            raise InvalidTransitionError(booking.status.value, BookingStatus.ASSIGNED.value)

        if booking.agent_id == agent.id and booking.status == BookingStatus.ASSIGNED:
            logger.info(f"ℹ️ Agent {agent.id} already assigned to booking {booking.id}")
            return self._assignment_result(booking, agent)

        if agent.status == AgentStatus.OFFLINE:
            raise InvalidStateError(f"Agent {agent.name} is offline")

        previous_agent_id = booking.agent_id
        with unit_of_work(self.db):
            if not self.agent_repo.claim_agent(self.db, agent.id):
                if agent.status == AgentStatus.OFFLINE:
                    raise InvalidStateError(f"Agent {agent.name} is offline")
                raise ConflictError(f"Agent {agent.name} is already busy with another booking")

            if previous_agent_id is not None and previous_agent_id != agent.id:
                self.agent_repo.release_agent(self.db, previous_agent_id)
                logger.info(f"🔄 Agent {previous_agent_id} unassigned from booking {booking.id}")

            self.state_machine.mark_assigned(booking, agent.id)

            if self.provider_repo.add_client_to_roster(organization, booking.client):
                logger.info(f"✅ Client {booking.client_id} added to organization {organization.id} roster")

        logger.info(f"✅ Agent {agent.id} assigned to booking {booking.id}")

        self.notifier.dispatch(self._assignment_notifications(booking, agent))
        return self._assignment_result(booking, agent)

    def process_payment(self, agent_id: int, booking_id: int) -> Booking:
        """
        Settle a booking: re-verify the price, mark it PAID and COMPLETED.

        The total is always re-derived from the service's current base price.
        Repeat calls leave the booking PAID and COMPLETED without error.
        """
        booking = self.booking_repo.get_booking_for_agent(self.db, booking_id, agent_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidStateError("Cannot process payment for a cancelled booking")

        service = self.booking_repo.get_service(self.db, booking.service_id)
        if not service:
            raise NotFoundError("Service not found")

        with unit_of_work(self.db):
            booking.total_price = compute_total(service.base_price, booking.extra_tasks)
            booking.payment_status = PaymentStatus.PAID
            booking.updated_at = utcnow()
            newly_completed = self.state_machine.mark_completed(booking)

        logger.info(f"💰 Booking {booking.id} paid: total {booking.total_price}")

        if newly_completed:
            client = booking.client
            self.notifier.dispatch(
                [
                    Notification(
                        to=client.email,
                        subject="Payment Received",
                        message=(
                            f"Hello {client.name}, your payment of ${booking.total_price} for "
                            f"{service.name} has been received. Thank you!"
                        ),
                        notification_type="payment_received",
                    )
                ]
            )
        return booking

    @staticmethod
    def _assignment_result(booking: Booking, agent) -> dict:
        return {"bookingId": booking.id, "agentName": agent.name, "agentPhone": agent.phone}

    @staticmethod
    def _assignment_notifications(booking: Booking, agent) -> list[Notification]:
        client = booking.client
        service_name = booking.service.name if booking.service else "your service"
        when = f"{booking.booking_date} at {booking.booking_time}"
        return [
            Notification(
                to=agent.email,
                subject="New Job Assigned",
                message=(
                    f"Hello {agent.name}, you have been assigned to {service_name} for "
                    f"{client.name} on {when}. Address: {booking.address or 'N/A'}"
                ),
                notification_type="agent_assigned",
            ),
            Notification(
                to=client.email,
                subject="Agent Assigned to Your Booking",
                message=(
                    f"Hello {client.name}, {agent.name} has been assigned to your {service_name} "
                    f"booking on {when}. Contact: {agent.phone or 'N/A'}"
                ),
                notification_type="booking_assigned",
            ),
        ]
