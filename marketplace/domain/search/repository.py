"""Search repository - Read-only catalog queries for discovery"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Organization, Service


class SearchRepository:
    """Repository for public catalog reads"""

    @staticmethod
    def get_active_services(db: Session, category: Optional[str] = None) -> list[Service]:
        query = (
            db.query(Service)
            .options(joinedload(Service.organization), selectinload(Service.agents))
            .filter(Service.is_active.is_(True))
        )
        if category:
            query = query.filter(Service.category == category)
        return query.order_by(Service.id).all()

    @staticmethod
    def get_active_service(db: Session, service_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .options(joinedload(Service.organization), selectinload(Service.agents))
            .filter(Service.id == service_id, Service.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_distinct_categories(db: Session) -> list[str]:
        rows = (
            db.query(Service.category)
            .filter(Service.is_active.is_(True), Service.category.isnot(None))
            .distinct()
            .order_by(Service.category)
            .all()
        )
        return [category for (category,) in rows if category]

    @staticmethod
    def get_organization(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def count_organizations(db: Session, verified_only: bool = False) -> int:
        query = db.query(func.count(Organization.id))
        if verified_only:
            query = query.filter(Organization.is_verified.is_(True))
        return query.scalar() or 0

    @staticmethod
    def get_organizations(db: Session, offset: int, limit: int, verified_only: bool = False) -> list[Organization]:
        query = db.query(Organization)
        if verified_only:
            query = query.filter(Organization.is_verified.is_(True))
        return (
            query.order_by(Organization.rating.desc(), Organization.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
