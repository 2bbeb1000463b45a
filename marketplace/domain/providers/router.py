"""Provider router - FastAPI endpoints for organization owners"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import Caller, Role, require_role
from ...cache import Cache
from ...database import get_db
from ...dependencies import get_cache, get_embedder, get_notifier
from ...services.embedding_service import EmbeddingProvider
from ...services.notification_service import NotificationDispatcher
from ..agents.schemas import AgentCreate, AgentResponse, AgentServiceLinkRequest, agent_to_response
from ..bookings.schemas import BookingResponse, booking_to_response
from .schemas import (
    AssignAgentRequest,
    AssignmentResponse,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    RosterClientResponse,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    client_to_response,
    organization_to_response,
    service_to_response,
)
from .service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/provider", tags=["Service Provider"])

require_provider = require_role(Role.SERVICE_PROVIDER)


def get_provider_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    embedder: EmbeddingProvider = Depends(get_embedder),
    cache: Cache = Depends(get_cache),
) -> ProviderService:
    """Dependency injection for ProviderService"""
    return ProviderService(db, notifier, embedder, cache)


# ============================================================================
# ORGANIZATION
# ============================================================================


@router.post("/organization", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Create the caller's organization (one per provider)"""
    return organization_to_response(service.create_organization(caller.id, data))


@router.get("/organization", response_model=OrganizationResponse)
async def get_organization(
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return organization_to_response(service.get_organization(caller.id))


@router.put("/organization", response_model=OrganizationResponse)
async def update_organization(
    data: OrganizationUpdate,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return organization_to_response(service.update_organization(caller.id, data))


@router.get("/bookings", response_model=list[BookingResponse])
async def get_organization_bookings(
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Bookings made with the caller's organization, newest first"""
    return [booking_to_response(b) for b in service.get_organization_bookings(caller.id)]


@router.post("/bookings/{booking_id}/assign", response_model=AssignmentResponse)
async def assign_agent(
    booking_id: int,
    data: AssignAgentRequest,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Bind one of the caller's agents to a booking"""
    return AssignmentResponse(**service.assign_agent(caller.id, booking_id, data.agentId))


@router.get("/clients", response_model=list[RosterClientResponse])
async def get_clients(
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Clients the organization has served"""
    return [client_to_response(c) for c in service.get_clients(caller.id)]


# ============================================================================
# AGENTS
# ============================================================================


@router.get("/agents", response_model=list[AgentResponse])
async def get_agents(
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return [agent_to_response(a) for a in service.get_agents(caller.id)]


@router.post("/agents", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(
    data: AgentCreate,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return agent_to_response(service.create_agent(caller.id, data))


@router.delete("/agents/{agent_id}")
async def delete_agent(
    agent_id: int,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    service.delete_agent(caller.id, agent_id)
    return {"message": "Agent deleted successfully"}


@router.post("/agents/{agent_id}/services", response_model=AgentResponse)
async def link_agent_to_service(
    agent_id: int,
    data: AgentServiceLinkRequest,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Mark an agent as able to perform one of the organization's services"""
    return agent_to_response(service.link_agent_to_service(caller.id, agent_id, data.serviceId))


# ============================================================================
# SERVICES
# ============================================================================


@router.get("/services", response_model=list[ServiceResponse])
async def get_services(
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return [service_to_response(s) for s in service.get_services(caller.id)]


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def add_service(
    data: ServiceCreate,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    return service_to_response(service.add_service(caller.id, data))


@router.put("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    """Update a service; its embedding is refreshed when descriptive fields change"""
    return service_to_response(service.update_service(caller.id, service_id, data))


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: int,
    caller: Caller = Depends(require_provider),
    service: ProviderService = Depends(get_provider_service),
):
    deleted = service.delete_service(caller.id, service_id)
    if deleted:
        return {"message": "Service deleted successfully"}
    return {"message": "Service has booking history and was deactivated"}
