"""Agent service - Business logic for field agents working their assigned jobs"""

import logging
from decimal import Decimal
from typing import Any, Union

from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...errors import InvalidStateError, NotFoundError, ValidationError
from ...models import Agent, AgentStatus, Booking, BookingStatus, ExtraTask
from ...services.notification_service import Notification, NotificationDispatcher
from ..assignments.coordinator import AssignmentCoordinator
from ..bookings.pricing import reprice_booking, to_money
from ..bookings.repository import BookingRepository
from ..bookings.state_machine import BookingStateMachine, is_terminal
from .repository import AgentRepository

logger = logging.getLogger(__name__)

# Statuses an agent may set on themselves; BUSY is owned by assignment
SELF_SERVICE_STATUSES = frozenset({AgentStatus.FREE, AgentStatus.OFFLINE})


class AgentService:
    """Service layer for agent business logic"""

    def __init__(self, db: Session, notifier: NotificationDispatcher):
        self.db = db
        self.repo = AgentRepository()
        self.booking_repo = BookingRepository()
        self.state_machine = BookingStateMachine(db)
        self.coordinator = AssignmentCoordinator(db, notifier)
        self.notifier = notifier

    def _get_agent(self, agent_id: int) -> Agent:
        agent = self.repo.get_agent_by_id(self.db, agent_id)
        if not agent:
            raise NotFoundError("Agent not found")
        return agent

    def _get_bound_booking(self, agent_id: int, booking_id: int) -> Booking:
        """Agents only see bookings bound to them; anything else is reported as missing"""
        booking = self.booking_repo.get_booking_detail(self.db, booking_id)
        if not booking or booking.agent_id != agent_id:
            raise NotFoundError("Booking not found")
        return booking

    def get_dashboard(self, agent_id: int) -> dict:
        agent = self._get_agent(agent_id)
        bookings = self.repo.get_agent_bookings(self.db, agent_id)

        pending = [b for b in bookings if b.status == BookingStatus.ASSIGNED]
        in_progress = [b for b in bookings if b.status == BookingStatus.IN_PROGRESS]
        completed = [b for b in bookings if b.status == BookingStatus.COMPLETED]

        return {
            "agent": agent,
            "stats": {
                "total": len(bookings),
                "pending": len(pending),
                "inProgress": len(in_progress),
                "completed": len(completed),
            },
            "pendingJobs": pending,
            "inProgressJobs": in_progress,
            "completedJobs": completed,
        }

    def get_booking(self, agent_id: int, booking_id: int) -> Booking:
        return self._get_bound_booking(agent_id, booking_id)

    def update_status(self, agent_id: int, booking_id: int, status: Union[str, BookingStatus]) -> Booking:
        """Move a bound booking along the lifecycle; completion or cancellation frees the agent"""
        booking = self._get_bound_booking(agent_id, booking_id)

        with unit_of_work(self.db):
            self.state_machine.transition(booking, status)

        client = booking.client
        self.notifier.dispatch(
            [
                Notification(
                    to=client.email,
                    subject="Booking Status Updated",
                    message=f"Hello {client.name}, your booking {booking.id} is now {booking.status.value}.",
                    notification_type="booking_status",
                )
            ]
        )
        return booking

    # ========================================================================
    # EXTRA TASKS
    # ========================================================================

    def _get_editable_booking(self, agent_id: int, booking_id: int) -> Booking:
        booking = self._get_bound_booking(agent_id, booking_id)
        if is_terminal(booking.status):
            raise InvalidStateError(f"Cannot modify extra tasks on a {booking.status.value} booking")
        return booking

    def _current_base_price(self, booking: Booking) -> Decimal:
        service = self.booking_repo.get_service(self.db, booking.service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service.base_price

    def add_extra_task(self, agent_id: int, booking_id: int, description: str, price: Any) -> Booking:
        booking = self._get_editable_booking(agent_id, booking_id)
        amount = to_money(price)

        with unit_of_work(self.db):
            booking.extra_tasks.append(ExtraTask(description=description, price=amount))
            total = reprice_booking(booking, self._current_base_price(booking))

        logger.info(f"➕ Extra task added to booking {booking_id}: {description} (${amount}), total ${total}")
        return booking

    def update_extra_task(
        self, agent_id: int, booking_id: int, task_id: int, description: str, price: Any
    ) -> Booking:
        booking = self._get_editable_booking(agent_id, booking_id)
        task = self.booking_repo.find_extra_task(booking, task_id)
        if not task:
            raise NotFoundError("Extra task not found")
        amount = to_money(price)

        with unit_of_work(self.db):
            task.description = description
            task.price = amount
            total = reprice_booking(booking, self._current_base_price(booking))

        logger.info(f"✏️ Extra task {task_id} updated on booking {booking_id}, total ${total}")
        return booking

    def delete_extra_task(self, agent_id: int, booking_id: int, task_id: int) -> Booking:
        booking = self._get_editable_booking(agent_id, booking_id)
        task = self.booking_repo.find_extra_task(booking, task_id)
        if not task:
            raise NotFoundError("Extra task not found")

        with unit_of_work(self.db):
            booking.extra_tasks.remove(task)
            total = reprice_booking(booking, self._current_base_price(booking))

        logger.info(f"🗑️ Extra task {task_id} removed from booking {booking_id}, total ${total}")
        return booking

    def mark_paid(self, agent_id: int, booking_id: int) -> Booking:
        return self.coordinator.process_payment(agent_id, booking_id)

    def set_availability(self, agent_id: int, status: str) -> Agent:
        """Agents toggle between FREE and OFFLINE; a BUSY agent must finish its job first"""
        try:
            target = AgentStatus(str(status or "").strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown agent status: {status}") from None
        if target not in SELF_SERVICE_STATUSES:
            raise ValidationError("Availability can only be set to FREE or OFFLINE")

        agent = self._get_agent(agent_id)
        current = agent.status
        if current == AgentStatus.BUSY:
            raise InvalidStateError("Cannot change availability while assigned to an active booking")
        if current == target:
            return agent

        with unit_of_work(self.db):
            if not self.repo.set_availability(self.db, agent_id, current, target):
                raise InvalidStateError("Agent status changed concurrently; please retry")

        logger.info(f"✅ Agent {agent_id} availability: {current.value} → {target.value}")
        return agent
