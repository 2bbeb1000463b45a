"""
Candidate matching pipeline for service discovery

Stages run in a fixed order over the active catalog:
semantic → geo → keyword → category. Pagination is applied by the caller to
the fully ranked result.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from ...models import Service
from ...services.embedding_service import EmbeddingProvider, cosine_similarity

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass
class SearchParams:
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_km: float = 50.0
    q: Optional[str] = None
    category: Optional[str] = None
    page: int = 1
    limit: int = 20

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def query(self) -> str:
        return (self.q or "").strip()


@dataclass
class Candidate:
    service: Service
    score: Optional[float] = None
    distance_km: Optional[float] = None


@dataclass
class PipelineTrace:
    """Which stages shaped the result, for logging"""

    stages: list[str] = field(default_factory=list)

    @property
    def ranked(self) -> bool:
        return bool(self.stages)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def keyword_score(service: Service, query: str) -> int:
    """Case-insensitive substring hits: name counts most, then category, then tags"""
    needle = query.lower()
    score = 0
    if needle in (service.name or "").lower():
        score += 3
    if needle in (service.category or "").lower():
        score += 2
    if any(needle in str(tag).lower() for tag in (service.tags or [])):
        score += 1
    return score


class SearchPipeline:
    def __init__(self, embedder: EmbeddingProvider, top_k: int = 15, min_query_length: int = 3):
        self.embedder = embedder
        self.top_k = top_k
        self.min_query_length = min_query_length

    def run(self, services: list[Service], params: SearchParams) -> list[Candidate]:
        candidates = [Candidate(service=s) for s in services]
        trace = PipelineTrace()

        candidates = self._semantic(candidates, params, trace)
        candidates = self._geo(candidates, params, trace)
        candidates = self._keyword(candidates, params, trace)
        candidates = self._category(candidates, params)

        if not trace.ranked:
            candidates.sort(key=lambda c: c.service.id)
        logger.debug(f"🔎 Search stages applied: {trace.stages or ['fallback']} → {len(candidates)} candidates")
        return candidates

    def _semantic(self, candidates: list[Candidate], params: SearchParams, trace: PipelineTrace) -> list[Candidate]:
        query = params.query
        if len(query) < self.min_query_length:
            return candidates

        vector = self.embedder.embed(query)
        if not vector:
            logger.info(f"⚠️ Semantic search unavailable for '{query}', falling back to keyword ranking")
            return candidates

        for candidate in candidates:
            candidate.score = cosine_similarity(vector, candidate.service.embedding or [])
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)[: self.top_k]
        trace.stages.append("semantic")
        return ranked

    def _geo(self, candidates: list[Candidate], params: SearchParams, trace: PipelineTrace) -> list[Candidate]:
        if not params.has_location:
            return candidates

        nearby = []
        for candidate in candidates:
            service = candidate.service
            if service.latitude is None or service.longitude is None:
                continue
            distance = haversine_km(params.lat, params.lng, service.latitude, service.longitude)
            if distance <= params.radius_km:
                candidate.distance_km = distance
                nearby.append(candidate)

        if not trace.ranked:
            nearby.sort(key=lambda c: c.distance_km)
        trace.stages.append("geo")
        return nearby

    def _keyword(self, candidates: list[Candidate], params: SearchParams, trace: PipelineTrace) -> list[Candidate]:
        query = params.query
        if not query or "semantic" in trace.stages:
            return candidates

        # Stable sort: matches first, earlier ordering kept within equal scores
        scored = [(keyword_score(c.service, query), c) for c in candidates]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        for score, candidate in scored:
            candidate.score = float(score)
        trace.stages.append("keyword")
        return [c for _, c in scored]

    @staticmethod
    def _category(candidates: list[Candidate], params: SearchParams) -> list[Candidate]:
        if not params.category:
            return candidates
        return [c for c in candidates if c.service.category == params.category]
