"""Public router - Unauthenticated discovery endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...cache import Cache
from ...database import get_db
from ...dependencies import get_cache, get_embedder
from ...services.embedding_service import EmbeddingProvider
from ..providers.schemas import OrganizationResponse, ServiceResponse, organization_to_response, service_to_response
from .schemas import CategoriesResponse, OrganizationPage, ServicePage
from .service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])


def get_search_service(
    db: Session = Depends(get_db),
    embedder: EmbeddingProvider = Depends(get_embedder),
    cache: Cache = Depends(get_cache),
) -> SearchService:
    """Dependency injection for SearchService"""
    return SearchService(db, embedder, cache)


@router.get("/search", response_model=ServicePage)
async def search_services(
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radiusInKm: Optional[float] = Query(None),
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    service: SearchService = Depends(get_search_service),
):
    """Smart search: semantic ranking with geo, keyword and category refinement"""
    params = service.build_params(lat, lng, radiusInKm, q, category, page, limit)
    result = service.search_smart(params)
    return ServicePage(
        **{
            **result,
            "items": [
                service_to_response(c.service, distance_km=c.distance_km, score=c.score) for c in result["items"]
            ],
        }
    )


@router.get("/categories", response_model=CategoriesResponse)
async def get_categories(service: SearchService = Depends(get_search_service)):
    """Distinct categories across active services"""
    return CategoriesResponse(categories=service.distinct_categories())


@router.get("/services", response_model=ServicePage)
async def list_services(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    service: SearchService = Depends(get_search_service),
):
    result = service.list_services(page, limit, category)
    return ServicePage(**{**result, "items": [service_to_response(s) for s in result["items"]]})


@router.get("/services/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, service: SearchService = Depends(get_search_service)):
    return service_to_response(service.get_service(service_id))


@router.get("/organizations", response_model=OrganizationPage)
async def list_organizations(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    verified: bool = Query(False),
    service: SearchService = Depends(get_search_service),
):
    """Organizations by rating; ``verified=true`` restricts to verified ones"""
    result = service.list_organizations(page, limit, verified_only=verified)
    return OrganizationPage(**{**result, "items": [organization_to_response(o) for o in result["items"]]})


@router.get("/organizations/{organization_id}", response_model=OrganizationResponse)
async def get_organization(organization_id: int, service: SearchService = Depends(get_search_service)):
    return organization_to_response(service.get_organization(organization_id))
