"""Review service - Client reviews and the organization rating they feed"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...errors import ConflictError, NotFoundError, ValidationError
from ...models import Review
from ...services.notification_service import Notification, NotificationDispatcher
from ...shared.pagination import normalize_page, page_envelope
from ...shared.validators import validate_rating
from ..providers.repository import ProviderRepository
from .aggregator import RatingAggregator
from .repository import ReviewRepository

logger = logging.getLogger(__name__)

REVIEWS_MAX_LIMIT = 100


def _checked_rating(rating) -> int:
    try:
        return validate_rating(rating)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class ReviewService:
    """Every review write recomputes the organization aggregate in the same transaction"""

    def __init__(self, db: Session, notifier: NotificationDispatcher):
        self.db = db
        self.repo = ReviewRepository()
        self.provider_repo = ProviderRepository()
        self.aggregator = RatingAggregator()
        self.notifier = notifier

    def create_review(
        self,
        client_id: int,
        organization_id: int,
        service_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        rating = _checked_rating(rating)

        organization = self.repo.get_organization(self.db, organization_id)
        if not organization:
            raise NotFoundError("Organization not found")
        service = self.repo.get_service(self.db, service_id)
        if not service or service.organization_id != organization_id:
            raise NotFoundError("Service not found")

        if self.repo.find_review(self.db, client_id, organization_id, service_id):
            raise ConflictError("You have already reviewed this service")

        try:
            with unit_of_work(self.db):
                review = self.repo.create_review(
                    self.db,
                    client_id=client_id,
                    organization_id=organization_id,
                    service_id=service_id,
                    rating=rating,
                    comment=comment,
                )
                self.aggregator.recompute_and_store(self.db, organization_id)
        except IntegrityError:
            # Lost the race against a concurrent duplicate
            logger.warning(f"⚠️ Duplicate review rejected: client {client_id}, service {service_id}")
            raise ConflictError("You have already reviewed this service") from None

        logger.info(f"✅ Review {review.id} created for organization {organization_id} ({rating}★)")

        owner = organization.owner
        if owner is not None:
            self.notifier.dispatch(
                [
                    Notification(
                        to=owner.email,
                        subject="New Review Received",
                        message=f"{organization.name} received a {rating}-star review for {service.name}.",
                        notification_type="review_received",
                    )
                ]
            )
        return review

    def update_review(
        self,
        client_id: int,
        review_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Review:
        review = self.repo.get_review_for_author(self.db, review_id, client_id)
        if not review:
            raise NotFoundError("Review not found")

        with unit_of_work(self.db):
            if rating is not None:
                review.rating = _checked_rating(rating)
            if comment is not None:
                review.comment = comment
            self.aggregator.recompute_and_store(self.db, review.organization_id)

        logger.info(f"✅ Review {review_id} updated")
        return review

    def delete_review(self, client_id: int, review_id: int) -> None:
        review = self.repo.get_review_for_author(self.db, review_id, client_id)
        if not review:
            raise NotFoundError("Review not found")

        organization_id = review.organization_id
        with unit_of_work(self.db):
            self.repo.delete_review(self.db, review)
            self.aggregator.recompute_and_store(self.db, organization_id)

        logger.info(f"🗑️ Review {review_id} deleted")

    def get_organization_reviews(self, organization_id: int, page=None, limit=None) -> dict:
        if not self.repo.get_organization(self.db, organization_id):
            raise NotFoundError("Organization not found")

        page, limit = normalize_page(page, limit, REVIEWS_MAX_LIMIT)
        total = self.repo.count_organization_reviews(self.db, organization_id)
        reviews = self.repo.get_organization_reviews(self.db, organization_id, (page - 1) * limit, limit)
        return page_envelope(reviews, total, page, limit)

    def get_provider_reviews(self, provider_id: int, page=None, limit=None) -> dict:
        organization = self.provider_repo.get_organization_by_owner(self.db, provider_id)
        if not organization:
            raise NotFoundError("Organization not found. Please create your organization first.")
        return self.get_organization_reviews(organization.id, page, limit)
