"""Provider repository - Database operations for organizations, services and rosters"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Booking, Client, Organization, Review, Service, ServiceProvider, organization_clients


class ProviderRepository:
    """Repository for service-provider database operations"""

    @staticmethod
    def get_provider_by_id(db: Session, provider_id: int) -> Optional[ServiceProvider]:
        return db.query(ServiceProvider).filter(ServiceProvider.id == provider_id).first()

    @staticmethod
    def get_organization_by_owner(db: Session, owner_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.owner_id == owner_id).first()

    @staticmethod
    def create_organization(db: Session, owner_id: int, **org_data) -> Organization:
        organization = Organization(owner_id=owner_id, **org_data)
        db.add(organization)
        db.flush()
        return organization

    @staticmethod
    def get_services_for_organization(db: Session, organization_id: int) -> list[Service]:
        return (
            db.query(Service)
            .options(selectinload(Service.agents))
            .filter(Service.organization_id == organization_id)
            .order_by(Service.created_at.desc(), Service.id.desc())
            .all()
        )

    @staticmethod
    def get_service_for_organization(db: Session, service_id: int, organization_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def create_service(db: Session, organization_id: int, **service_data) -> Service:
        service = Service(organization_id=organization_id, **service_data)
        db.add(service)
        db.flush()
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)

    @staticmethod
    def service_is_referenced(db: Session, service_id: int) -> bool:
        """Bookings or reviews point at the service"""
        if db.query(Booking.id).filter(Booking.service_id == service_id).first() is not None:
            return True
        return db.query(Review.id).filter(Review.service_id == service_id).first() is not None

    @staticmethod
    def get_organization_clients(db: Session, organization_id: int) -> list[Client]:
        return (
            db.query(Client)
            .join(organization_clients, organization_clients.c.client_id == Client.id)
            .filter(organization_clients.c.organization_id == organization_id)
            .order_by(Client.name)
            .all()
        )

    @staticmethod
    def add_client_to_roster(organization: Organization, client: Client) -> bool:
        """Set membership: returns False when the client is already on the roster"""
        if client in organization.clients:
            return False
        organization.clients.append(client)
        return True
