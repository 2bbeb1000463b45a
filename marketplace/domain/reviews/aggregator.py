"""
Rating Aggregator
Keeps Organization.rating / review_count equal to the mean / count of the
organization's live reviews
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from ...errors import NotFoundError
from ...models import Organization, Review

logger = logging.getLogger(__name__)

ONE_DECIMAL = Decimal("0.1")


def mean_rating(ratings: list[int]) -> float:
    """Mean rounded half-up to one decimal; 0 for no reviews"""
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


class RatingAggregator:
    @staticmethod
    def recompute_and_store(db: Session, organization_id: int) -> tuple[float, int]:
        """
        Recompute the aggregate inside the caller's unit of work.

        The organization row is locked first (SELECT ... FOR UPDATE where the
        backend supports it) so concurrent review writes for one organization
        serialize on it. Pending review changes are flushed before reading.
        """
        organization = (
            db.query(Organization).filter(Organization.id == organization_id).with_for_update().first()
        )
        if not organization:
            raise NotFoundError("Organization not found")

        db.flush()
        ratings = [
            rating
            for (rating,) in db.query(Review.rating).filter(Review.organization_id == organization_id).all()
        ]

        organization.rating = mean_rating(ratings)
        organization.review_count = len(ratings)
        logger.info(
            f"⭐ Organization {organization_id} rating recomputed: {organization.rating} ({organization.review_count} reviews)"
        )
        return organization.rating, organization.review_count
