"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Review


class ReviewCreate(BaseModel):
    """Schema for a client reviewing a service it booked"""

    organizationId: int
    serviceId: int
    rating: int
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    id: int
    clientId: int
    clientName: Optional[str] = None
    organizationId: int
    serviceId: int
    serviceName: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewPage(BaseModel):
    items: list[ReviewResponse]
    total: int
    page: int
    limit: int
    totalPages: int


def review_to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        clientId=review.client_id,
        clientName=review.client.name if review.client else None,
        organizationId=review.organization_id,
        serviceId=review.service_id,
        serviceName=review.service.name if review.service else None,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )
