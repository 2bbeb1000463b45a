"""Search service - Public discovery: smart search, catalog and organization listings"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...cache import CATEGORIES_KEY, Cache
from ...errors import NotFoundError, ValidationError
from ...models import Organization, Service
from ...services.embedding_service import EmbeddingProvider
from ...shared.pagination import normalize_page, page_envelope, paginate
from .pipeline import SearchParams, SearchPipeline
from .repository import SearchRepository

logger = logging.getLogger(__name__)


class SearchService:
    def __init__(self, db: Session, embedder: EmbeddingProvider, cache: Cache):
        self.db = db
        self.repo = SearchRepository()
        self.cache = cache
        self.pipeline = SearchPipeline(
            embedder,
            top_k=config.SEMANTIC_TOP_K,
            min_query_length=config.SEMANTIC_MIN_QUERY_LENGTH,
        )

    def build_params(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: Optional[float] = None,
        q: Optional[str] = None,
        category: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SearchParams:
        """Apply defaults and reject unusable coordinates"""
        if (lat is None) != (lng is None):
            raise ValidationError("Both lat and lng are required for location search")
        if lat is not None and not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise ValidationError("Coordinates out of range")
        if radius_km is None:
            radius_km = config.SEARCH_DEFAULT_RADIUS_KM
        if radius_km <= 0:
            raise ValidationError("radiusInKm must be positive")

        page, limit = normalize_page(page, limit, config.SEARCH_MAX_LIMIT)
        return SearchParams(
            lat=lat,
            lng=lng,
            radius_km=radius_km,
            q=q,
            category=category or None,
            page=page,
            limit=limit,
        )

    def search_smart(self, params: SearchParams) -> dict:
        """
        Rank the active catalog through the pipeline, then paginate.

        Returns ``{items, total, page, limit, totalPages}`` where items are
        Candidate records (service plus score/distance).
        """
        services = self.repo.get_active_services(self.db)
        ranked = self.pipeline.run(services, params)
        logger.info(
            f"🔍 Search q={params.query!r} category={params.category!r} "
            f"location={params.has_location}: {len(ranked)} results"
        )
        return paginate(ranked, params.page, params.limit)

    def distinct_categories(self) -> list[str]:
        cached = self.cache.get(CATEGORIES_KEY)
        if cached is not None:
            return cached

        categories = self.repo.get_distinct_categories(self.db)
        self.cache.set(CATEGORIES_KEY, categories, ttl=config.CATEGORIES_CACHE_TTL)
        return categories

    def list_services(self, page=None, limit=None, category: Optional[str] = None) -> dict:
        page, limit = normalize_page(page, limit, config.SEARCH_MAX_LIMIT)
        return paginate(self.repo.get_active_services(self.db, category), page, limit)

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_active_service(self.db, service_id)
        if not service:
            raise NotFoundError(f"Service with ID {service_id} not found")
        return service

    def list_organizations(self, page=None, limit=None, verified_only: bool = False) -> dict:
        page, limit = normalize_page(page, limit, config.SEARCH_MAX_LIMIT)
        total = self.repo.count_organizations(self.db, verified_only)
        organizations = self.repo.get_organizations(self.db, (page - 1) * limit, limit, verified_only)
        return page_envelope(organizations, total, page, limit)

    def get_organization(self, organization_id: int) -> Organization:
        organization = self.repo.get_organization(self.db, organization_id)
        if not organization:
            raise NotFoundError("Organization not found")
        return organization
