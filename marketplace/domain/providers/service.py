"""Provider service - Business logic for organization owners"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache, invalidate_categories_cache
from ...database import unit_of_work
from ...errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ...models import Agent, AgentStatus, Booking, Client, Organization, Service
from ...services.embedding_service import EmbeddingProvider, build_embedding_text
from ...services.notification_service import NotificationDispatcher
from ...shared.validators import validate_coordinates
from ..agents.repository import AgentRepository
from ..agents.schemas import AgentCreate
from ..assignments.coordinator import AssignmentCoordinator
from ..bookings.pricing import to_money
from ..bookings.repository import BookingRepository
from .repository import ProviderRepository
from .schemas import OrganizationCreate, OrganizationUpdate, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

# Fields a service embedding is derived from
EMBEDDED_FIELDS = ("name", "description", "category", "tags")

# camelCase request field → Organization column
ORGANIZATION_FIELDS = {
    "name": "name",
    "description": "description",
    "address": "address",
    "phone": "phone",
    "website": "website",
    "logoUrl": "logo_url",
    "imageUrls": "image_urls",
    "categories": "categories",
    "businessHours": "business_hours",
}

# camelCase request field → Service column
SERVICE_FIELDS = {
    "name": "name",
    "description": "description",
    "estimatedDuration": "estimated_duration",
    "category": "category",
    "address": "address",
    "tags": "tags",
    "imageUrls": "image_urls",
    "isActive": "is_active",
}


def _point(location) -> tuple[Optional[float], Optional[float]]:
    if location is None:
        return None, None
    lat, lng = location.lat, location.lng
    if not validate_coordinates(lat, lng):
        return None, None
    return lat, lng


class ProviderService:
    """Service layer for provider business logic"""

    def __init__(
        self,
        db: Session,
        notifier: NotificationDispatcher,
        embedder: EmbeddingProvider,
        cache: Cache,
    ):
        self.db = db
        self.repo = ProviderRepository()
        self.agent_repo = AgentRepository()
        self.booking_repo = BookingRepository()
        self.coordinator = AssignmentCoordinator(db, notifier)
        self.embedder = embedder
        self.cache = cache

    # ========================================================================
    # ORGANIZATION
    # ========================================================================

    def get_organization(self, provider_id: int) -> Organization:
        organization = self.repo.get_organization_by_owner(self.db, provider_id)
        if not organization:
            raise NotFoundError("Organization not found. Please create your organization first.")
        return organization

    def create_organization(self, provider_id: int, data: OrganizationCreate) -> Organization:
        """One organization per provider account"""
        if not self.repo.get_provider_by_id(self.db, provider_id):
            raise NotFoundError("Service provider not found")
        if self.repo.get_organization_by_owner(self.db, provider_id):
            raise ConflictError("Organization already exists for this provider")

        values = {
            column: getattr(data, field)
            for field, column in ORGANIZATION_FIELDS.items()
            if getattr(data, field) is not None
        }
        values["latitude"], values["longitude"] = _point(data.location)

        with unit_of_work(self.db):
            organization = self.repo.create_organization(self.db, provider_id, **values)

        logger.info(f"✅ Organization {organization.id} created for provider {provider_id}")
        return organization

    def update_organization(self, provider_id: int, data: OrganizationUpdate) -> Organization:
        organization = self.get_organization(provider_id)
        update_data = data.model_dump(exclude_unset=True)

        with unit_of_work(self.db):
            for field, value in update_data.items():
                if field == "location":
                    organization.latitude, organization.longitude = _point(data.location)
                elif field in ORGANIZATION_FIELDS:
                    if field == "name" and value is None:
                        continue
                    setattr(organization, ORGANIZATION_FIELDS[field], value)

        logger.info(f"✅ Organization {organization.id} updated: {list(update_data.keys())}")
        return organization

    def get_organization_bookings(self, provider_id: int) -> list[Booking]:
        organization = self.get_organization(provider_id)
        return self.booking_repo.get_organization_bookings(self.db, organization.id)

    def assign_agent(self, provider_id: int, booking_id: int, agent_id: int) -> dict:
        return self.coordinator.assign(provider_id, booking_id, agent_id)

    def get_clients(self, provider_id: int) -> list[Client]:
        organization = self.get_organization(provider_id)
        return self.repo.get_organization_clients(self.db, organization.id)

    # ========================================================================
    # AGENTS
    # ========================================================================

    def get_agents(self, provider_id: int) -> list[Agent]:
        return self.agent_repo.get_agents_for_provider(self.db, provider_id)

    def _get_own_agent(self, provider_id: int, agent_id: int) -> Agent:
        agent = self.agent_repo.get_agent_for_provider(self.db, agent_id, provider_id)
        if not agent:
            raise NotFoundError("Agent not found")
        return agent

    def create_agent(self, provider_id: int, data: AgentCreate) -> Agent:
        if self.agent_repo.get_agent_by_email(self.db, data.email):
            raise ConflictError("An agent with this email already exists")

        with unit_of_work(self.db):
            agent = self.agent_repo.create_agent(
                self.db,
                provider_id,
                name=data.name,
                email=data.email,
                phone=data.phone,
                address=data.address,
                status=AgentStatus.FREE,
            )

        logger.info(f"✅ Agent {agent.id} created for provider {provider_id}")
        return agent

    def delete_agent(self, provider_id: int, agent_id: int) -> None:
        agent = self._get_own_agent(provider_id, agent_id)
        if agent.status == AgentStatus.BUSY or self.agent_repo.get_active_booking(self.db, agent_id):
            raise InvalidStateError("Cannot delete an agent with an active booking")

        with unit_of_work(self.db):
            self.agent_repo.delete_agent(self.db, agent)

        logger.info(f"🗑️ Agent {agent_id} deleted by provider {provider_id}")

    def link_agent_to_service(self, provider_id: int, agent_id: int, service_id: int) -> Agent:
        """Record that an agent can perform a service; linking twice is a no-op"""
        agent = self._get_own_agent(provider_id, agent_id)
        organization = self.get_organization(provider_id)
        service = self.repo.get_service_for_organization(self.db, service_id, organization.id)
        if not service:
            raise NotFoundError("Service not found")

        if service not in agent.services:
            with unit_of_work(self.db):
                agent.services.append(service)
            logger.info(f"🔗 Agent {agent_id} linked to service {service_id}")
        return agent

    # ========================================================================
    # SERVICES
    # ========================================================================

    def _embed(self, name, description, category, tags) -> Optional[list[float]]:
        """Embed the service text with no transaction open on the session"""
        # Ends the read snapshot; nothing has been written yet
        self.db.commit()
        text = build_embedding_text(name, description, category, tags)
        vector = self.embedder.embed(text)
        if not vector:
            logger.warning(f"⚠️ No embedding for service '{name}', semantic search will skip it")
            return None
        return vector

    def get_services(self, provider_id: int) -> list[Service]:
        organization = self.get_organization(provider_id)
        return self.repo.get_services_for_organization(self.db, organization.id)

    def add_service(self, provider_id: int, data: ServiceCreate) -> Service:
        organization = self.get_organization(provider_id)
        latitude, longitude = _point(data.location)
        if latitude is None:
            # Services inherit the organization's location when none is given
            latitude, longitude = organization.latitude, organization.longitude
        organization_id = organization.id
        embedding = self._embed(data.name, data.description, data.category, data.tags)

        with unit_of_work(self.db):
            service = self.repo.create_service(
                self.db,
                organization_id,
                name=data.name,
                description=data.description,
                base_price=to_money(data.basePrice),
                estimated_duration=data.estimatedDuration,
                category=data.category,
                latitude=latitude,
                longitude=longitude,
                address=data.address,
                tags=data.tags,
                image_urls=data.imageUrls,
                is_active=data.isActive,
                embedding=embedding,
            )

        invalidate_categories_cache(self.cache)
        logger.info(f"✅ Service {service.id} added to organization {organization_id}")
        return service

    def update_service(self, provider_id: int, service_id: int, data: ServiceUpdate) -> Service:
        organization = self.get_organization(provider_id)
        service = self.repo.get_service_for_organization(self.db, service_id, organization.id)
        if not service:
            raise NotFoundError("Service not found")

        update_data = data.model_dump(exclude_unset=True)
        if "basePrice" in update_data and update_data["basePrice"] is None:
            raise ValidationError("basePrice cannot be null")

        # Embedding text as it will read after the update
        embedded = {f: update_data.get(f, getattr(service, f)) for f in EMBEDDED_FIELDS}
        text_changed = any(embedded[f] != getattr(service, f) for f in EMBEDDED_FIELDS)
        if text_changed:
            logger.info(f"🧠 Re-embedding service {service_id}")
            embedding = self._embed(**embedded)

        with unit_of_work(self.db):
            for field, value in update_data.items():
                if field == "basePrice":
                    service.base_price = to_money(value)
                elif field == "location":
                    service.latitude, service.longitude = _point(data.location)
                elif field in SERVICE_FIELDS:
                    setattr(service, SERVICE_FIELDS[field], value)
            if text_changed:
                service.embedding = embedding

        invalidate_categories_cache(self.cache)
        logger.info(f"✅ Service {service.id} updated: {list(update_data.keys())}")
        return service

    def delete_service(self, provider_id: int, service_id: int) -> bool:
        """
        Remove a service from the catalog.

        Services referenced by bookings or reviews are deactivated instead, so
        history keeps its service. Returns True if the row was deleted.
        """
        organization = self.get_organization(provider_id)
        service = self.repo.get_service_for_organization(self.db, service_id, organization.id)
        if not service:
            raise NotFoundError("Service not found")

        with unit_of_work(self.db):
            if self.repo.service_is_referenced(self.db, service_id):
                service.is_active = False
                deleted = False
            else:
                self.repo.delete_service(self.db, service)
                deleted = True

        invalidate_categories_cache(self.cache)
        logger.info(f"🗑️ Service {service_id} {'deleted' if deleted else 'deactivated'}")
        return deleted
