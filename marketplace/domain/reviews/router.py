"""Review router - FastAPI endpoints for client reviews and review listings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import Caller, Role, require_role
from ...database import get_db
from ...dependencies import get_notifier
from ...services.notification_service import NotificationDispatcher
from .schemas import ReviewCreate, ReviewPage, ReviewResponse, ReviewUpdate, review_to_response
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reviews"])


def get_review_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db, notifier)


def _page_response(result: dict) -> ReviewPage:
    return ReviewPage(**{**result, "items": [review_to_response(r) for r in result["items"]]})


@router.post("/client/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: ReviewService = Depends(get_review_service),
):
    """One review per client, organization and service"""
    review = service.create_review(caller.id, data.organizationId, data.serviceId, data.rating, data.comment)
    return review_to_response(review)


@router.put("/client/reviews/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    data: ReviewUpdate,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_response(service.update_review(caller.id, review_id, data.rating, data.comment))


@router.delete("/client/reviews/{review_id}")
async def delete_review(
    review_id: int,
    caller: Caller = Depends(require_role(Role.CLIENT)),
    service: ReviewService = Depends(get_review_service),
):
    service.delete_review(caller.id, review_id)
    return {"message": "Review deleted successfully"}


@router.get("/provider/reviews", response_model=ReviewPage)
async def get_provider_reviews(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    caller: Caller = Depends(require_role(Role.SERVICE_PROVIDER)),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews of the caller's organization, newest first"""
    return _page_response(service.get_provider_reviews(caller.id, page, limit))


@router.get("/public/organizations/{organization_id}/reviews", response_model=ReviewPage)
async def get_organization_reviews(
    organization_id: int,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: ReviewService = Depends(get_review_service),
):
    return _page_response(service.get_organization_reviews(organization_id, page, limit))
