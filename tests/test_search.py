"""Tests for the discovery pipeline and public catalog reads."""

import pytest

from marketplace.cache import CATEGORIES_KEY
from marketplace.domain.search.pipeline import SearchParams, SearchPipeline, haversine_km, keyword_score
from marketplace.domain.search.service import SearchService
from marketplace.errors import NotFoundError, ValidationError

from tests.conftest import FakeEmbeddingProvider, make_organization, make_provider, make_service

# Colombo, and points roughly 10 km and 95 km away
COLOMBO = (6.9271, 79.8612)
DEHIWALA = (6.8390, 79.8650)
KANDY = (7.2906, 80.6337)


@pytest.fixture
def catalog(db):
    organization = make_organization(db, make_provider(db))
    return {
        "wiring": make_service(
            db, organization, name="House Wiring", category="Electrical",
            latitude=DEHIWALA[0], longitude=DEHIWALA[1], tags=["wiring", "lights"], embedding=[1.0, 0.0],
        ),
        "plumbing": make_service(
            db, organization, name="Pipe Repair", category="Plumbing",
            latitude=COLOMBO[0], longitude=COLOMBO[1], tags=["leaks"], embedding=[0.0, 1.0],
        ),
        "cleaning": make_service(
            db, organization, name="Deep Clean", category="Cleaning",
            latitude=KANDY[0], longitude=KANDY[1], tags=["home"], embedding=[0.6, 0.8],
        ),
    }


def search(db, embedder, cache, **params):
    service = SearchService(db, embedder, cache)
    return service.search_smart(service.build_params(**params))


def names(result):
    return [c.service.name for c in result["items"]]


class TestHelpers:
    def test_haversine_known_distance(self):
        assert haversine_km(*COLOMBO, *DEHIWALA) == pytest.approx(9.8, abs=0.5)
        assert haversine_km(*COLOMBO, *COLOMBO) == 0

    def test_keyword_score_weights(self, catalog):
        assert keyword_score(catalog["wiring"], "wiring") == 4  # name + tag
        assert keyword_score(catalog["wiring"], "electrical") == 2
        assert keyword_score(catalog["wiring"], "carpentry") == 0


class TestSmartSearch:
    def test_no_signals_returns_all_by_id(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache)
        assert [c.service.id for c in result["items"]] == sorted(s.id for s in catalog.values())
        assert result["total"] == 3

    def test_semantic_ranking(self, db, cache, catalog):
        embedder = FakeEmbeddingProvider({"electric": [0.9, 0.1]})
        result = search(db, embedder, cache, q="electrician near me")
        assert names(result) == ["House Wiring", "Deep Clean", "Pipe Repair"]
        assert result["items"][0].score == pytest.approx(0.9939, abs=1e-3)

    def test_semantic_keeps_top_k(self, db, cache, catalog):
        embedder = FakeEmbeddingProvider({"electric": [0.9, 0.1]})
        service = SearchService(db, embedder, cache)
        service.pipeline.top_k = 2
        result = service.search_smart(service.build_params(q="electrician"))
        assert result["total"] == 2

    def test_empty_embedding_still_returns_results(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache, q="pipe")
        assert result["total"] == 3
        assert names(result)[0] == "Pipe Repair"

    def test_short_query_skips_semantic(self, db, cache, catalog):
        embedder = FakeEmbeddingProvider({"ab": [1.0, 0.0]})
        search(db, embedder, cache, q="ab")
        assert embedder.calls == []

    def test_geo_filters_and_sorts_by_distance(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache, lat=COLOMBO[0], lng=COLOMBO[1], radius_km=50)
        assert names(result) == ["Pipe Repair", "House Wiring"]
        assert result["items"][1].distance_km == pytest.approx(9.8, abs=0.5)

    def test_default_radius_is_50km(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache, lat=COLOMBO[0], lng=COLOMBO[1])
        assert "Deep Clean" not in names(result)

    def test_geo_after_semantic_keeps_semantic_order(self, db, cache, catalog):
        embedder = FakeEmbeddingProvider({"electric": [0.9, 0.1]})
        result = search(db, embedder, cache, q="electrician", lat=COLOMBO[0], lng=COLOMBO[1])
        assert names(result) == ["House Wiring", "Pipe Repair"]

    def test_category_filter(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache, category="Plumbing")
        assert names(result) == ["Pipe Repair"]

    def test_category_is_exact_match(self, db, embedder, cache, catalog):
        assert search(db, embedder, cache, category="plumb")["total"] == 0

    def test_inactive_services_hidden(self, db, embedder, cache, catalog):
        catalog["plumbing"].is_active = False
        db.commit()
        assert "Pipe Repair" not in names(search(db, embedder, cache))

    def test_pagination(self, db, embedder, cache, catalog):
        result = search(db, embedder, cache, page=2, limit=2)
        assert result["page"] == 2
        assert result["limit"] == 2
        assert result["total"] == 3
        assert result["totalPages"] == 2
        assert len(result["items"]) == 1

    def test_limit_capped(self, db, embedder, cache, catalog):
        assert search(db, embedder, cache, limit=1000)["limit"] == 100

    def test_half_a_location_rejected(self, db, embedder, cache):
        with pytest.raises(ValidationError):
            search(db, embedder, cache, lat=COLOMBO[0])

    def test_non_positive_radius_rejected(self, db, embedder, cache):
        with pytest.raises(ValidationError):
            search(db, embedder, cache, lat=COLOMBO[0], lng=COLOMBO[1], radius_km=0)


class TestPipelineDirect:
    def test_keyword_never_empties(self, catalog):
        pipeline = SearchPipeline(FakeEmbeddingProvider())
        ranked = pipeline.run(list(catalog.values()), SearchParams(q="nothing matches this"))
        assert len(ranked) == 3


class TestCatalog:
    def test_distinct_categories_sorted_and_cached(self, db, embedder, cache, catalog):
        service = SearchService(db, embedder, cache)
        assert service.distinct_categories() == ["Cleaning", "Electrical", "Plumbing"]
        assert cache.get(CATEGORIES_KEY) == ["Cleaning", "Electrical", "Plumbing"]

    def test_categories_served_from_cache(self, db, embedder, cache, catalog):
        cache.set(CATEGORIES_KEY, ["Cached"])
        assert SearchService(db, embedder, cache).distinct_categories() == ["Cached"]

    def test_get_service(self, db, embedder, cache, catalog):
        service = SearchService(db, embedder, cache)
        assert service.get_service(catalog["wiring"].id).name == "House Wiring"
        with pytest.raises(NotFoundError):
            service.get_service(999)

    def test_list_organizations_verified_only(self, db, embedder, cache, catalog):
        verified = make_organization(db, make_provider(db, name="V", email="v@provider.test"), name="Verified")
        verified.is_verified = True
        db.commit()

        service = SearchService(db, embedder, cache)
        assert service.list_organizations()["total"] == 2
        result = service.list_organizations(verified_only=True)
        assert [o.name for o in result["items"]] == ["Verified"]
