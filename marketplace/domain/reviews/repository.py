"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Organization, Review, Service


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_review_for_author(db: Session, review_id: int, client_id: int) -> Optional[Review]:
        """Reviews are only editable by their author; others see nothing"""
        return db.query(Review).filter(Review.id == review_id, Review.client_id == client_id).first()

    @staticmethod
    def find_review(db: Session, client_id: int, organization_id: int, service_id: int) -> Optional[Review]:
        return (
            db.query(Review)
            .filter(
                Review.client_id == client_id,
                Review.organization_id == organization_id,
                Review.service_id == service_id,
            )
            .first()
        )

    @staticmethod
    def create_review(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        db.flush()
        return review

    @staticmethod
    def delete_review(db: Session, review: Review) -> None:
        db.delete(review)

    @staticmethod
    def get_organization(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def count_organization_reviews(db: Session, organization_id: int) -> int:
        return db.query(func.count(Review.id)).filter(Review.organization_id == organization_id).scalar() or 0

    @staticmethod
    def get_organization_reviews(db: Session, organization_id: int, offset: int, limit: int) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.client), joinedload(Review.service))
            .filter(Review.organization_id == organization_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
