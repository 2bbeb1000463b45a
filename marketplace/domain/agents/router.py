"""Agent router - FastAPI endpoints for agents working their assigned jobs"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Caller, Role, require_role
from ...database import get_db
from ...dependencies import get_notifier
from ...services.notification_service import NotificationDispatcher
from ..bookings.schemas import BookingResponse, ExtraTaskRequest, StatusUpdateRequest, booking_to_response
from .schemas import AgentDashboardResponse, AgentResponse, AgentStats, AvailabilityRequest, agent_to_response
from .service import AgentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["Agent"])

require_agent = require_role(Role.AGENT)


def get_agent_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> AgentService:
    """Dependency injection for AgentService"""
    return AgentService(db, notifier)


@router.get("/dashboard", response_model=AgentDashboardResponse)
async def get_dashboard(
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    """Job counts and bookings grouped by progress"""
    dashboard = service.get_dashboard(caller.id)
    return AgentDashboardResponse(
        agent=agent_to_response(dashboard["agent"]),
        stats=AgentStats(**dashboard["stats"]),
        pendingJobs=[booking_to_response(b) for b in dashboard["pendingJobs"]],
        inProgressJobs=[booking_to_response(b) for b in dashboard["inProgressJobs"]],
        completedJobs=[booking_to_response(b) for b in dashboard["completedJobs"]],
    )


@router.patch("/availability", response_model=AgentResponse)
async def set_availability(
    data: AvailabilityRequest,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    """Switch between FREE and OFFLINE"""
    return agent_to_response(service.set_availability(caller.id, data.status))


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    return booking_to_response(service.get_booking(caller.id, booking_id))


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: StatusUpdateRequest,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    """Update the status of a booking bound to the caller"""
    return booking_to_response(service.update_status(caller.id, booking_id, data.status))


# ============================================================================
# EXTRA TASKS
# ============================================================================


@router.post("/bookings/{booking_id}/extra-tasks", response_model=BookingResponse)
async def add_extra_task(
    booking_id: int,
    data: ExtraTaskRequest,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    """Add a priced line item; the total is recomputed and any payment invalidated"""
    booking = service.add_extra_task(caller.id, booking_id, data.description, data.price)
    return booking_to_response(booking)


@router.put("/bookings/{booking_id}/extra-tasks/{task_id}", response_model=BookingResponse)
async def update_extra_task(
    booking_id: int,
    task_id: int,
    data: ExtraTaskRequest,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    booking = service.update_extra_task(caller.id, booking_id, task_id, data.description, data.price)
    return booking_to_response(booking)


@router.delete("/bookings/{booking_id}/extra-tasks/{task_id}", response_model=BookingResponse)
async def delete_extra_task(
    booking_id: int,
    task_id: int,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    booking = service.delete_extra_task(caller.id, booking_id, task_id)
    return booking_to_response(booking)


@router.post("/bookings/{booking_id}/pay", response_model=BookingResponse)
async def mark_paid(
    booking_id: int,
    caller: Caller = Depends(require_agent),
    service: AgentService = Depends(get_agent_service),
):
    """Collect payment: price re-verified, booking PAID and COMPLETED, agent freed"""
    return booking_to_response(service.mark_paid(caller.id, booking_id))
