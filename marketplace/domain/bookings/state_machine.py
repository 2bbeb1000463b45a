"""
Booking status transitions and their side effects

Booking statuses: PENDING → ASSIGNED → IN_PROGRESS → COMPLETED, with CANCELLED
reachable from any non-terminal status. ASSIGNED is only entered through agent
assignment. Reaching COMPLETED or CANCELLED releases the bound agent in the
same unit of work.
"""

import logging
from typing import Union

from sqlalchemy.orm import Session

from ...errors import InvalidTransitionError, ValidationError
from ...models import Booking, BookingStatus, utcnow
from ..agents.repository import AgentRepository

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ASSIGNED, BookingStatus.CANCELLED}),
    BookingStatus.ASSIGNED: frozenset(
        {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),  # Terminal state
    BookingStatus.CANCELLED: frozenset(),  # Terminal state
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Statuses from which the agent binding may be (re)written
ASSIGNABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.ASSIGNED})


def parse_status(value: Union[str, BookingStatus]) -> BookingStatus:
    """Accept 'IN_PROGRESS', 'in progress', 'In Progress' and friends"""
    if isinstance(value, BookingStatus):
        return value
    normalized = str(value or "").strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return BookingStatus(normalized)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {value}") from None


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


class BookingStateMachine:
    """Applies status changes to a loaded booking inside the caller's unit of work"""

    def __init__(self, db: Session):
        self.db = db
        self.agent_repo = AgentRepository()

    def transition(self, booking: Booking, target: Union[str, BookingStatus]) -> Booking:
        """Generic status update, checked against the transition table"""
        target = parse_status(target)
        current = booking.status

        if target == BookingStatus.ASSIGNED:
            raise InvalidTransitionError(
                current.value,
                target.value,
                "Bookings can only become ASSIGNED by assigning an agent",
            )
        ensure_transition(current, target)

        booking.status = target
        booking.updated_at = utcnow()
        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → {target.value}")

        if target in TERMINAL_STATUSES:
            self.release_agent(booking)
        return booking

    def mark_assigned(self, booking: Booking, agent_id: int) -> Booking:
        """Sole path into ASSIGNED; the caller has already claimed the agent"""
        current = booking.status
        if current not in ASSIGNABLE_STATUSES:
            raise InvalidTransitionError(current.value, BookingStatus.ASSIGNED.value)

        booking.agent_id = agent_id
        booking.status = BookingStatus.ASSIGNED
        booking.updated_at = utcnow()
        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → ASSIGNED (agent {agent_id})")
        return booking

    def mark_completed(self, booking: Booking) -> bool:
        """
        Direct completion used by the payment path.

        Returns True if the booking became COMPLETED now, False if it already was.
        """
        current = booking.status
        if current == BookingStatus.COMPLETED:
            return False
        if current == BookingStatus.CANCELLED:
            raise InvalidTransitionError(current.value, BookingStatus.COMPLETED.value)

        booking.status = BookingStatus.COMPLETED
        booking.updated_at = utcnow()
        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → COMPLETED")
        self.release_agent(booking)
        return True

    def release_agent(self, booking: Booking) -> bool:
        """Free the agent bound to a booking that just left the active set"""
        if booking.agent_id is None:
            return False
        released = self.agent_repo.release_agent(self.db, booking.agent_id)
        if released:
            logger.info(f"✅ Agent {booking.agent_id} released (booking {booking.id})")
        return released
