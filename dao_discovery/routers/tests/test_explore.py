"""Tests for the explore router."""
import pytest
from fastapi.testclient import TestClient

from dao_discovery.main import app
from dao_discovery.registry.discovery_client import DiscoveryClient
from dao_discovery.registry.exceptions import RegistryTimeoutError
from dao_discovery.registry.tests.factories import CREATOR, FakeRegistryAPI, make_raw_dao
from dao_discovery.routers.explore import get_discovery_client


@pytest.fixture
def registry():
    records = [make_raw_dao(i) for i in range(30)]
    records.append(make_raw_dao(100, name="Alpha Arcade", category="Gaming"))
    return FakeRegistryAPI(records)


@pytest.fixture
def client(registry):
    app.dependency_overrides[get_discovery_client] = lambda: DiscoveryClient(registry)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestListDAOs:
    """Test the paginated DAO listing endpoint."""

    def test_default_listing(self, client, registry):
        """Test default listing."""
        response = client.get("/explore/daos")

        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 12
        assert body["total_count"] == 31
        assert body["has_next"] is True
        assert body["has_previous"] is False
        assert registry.calls[0][0] == "get_all_public_daos"

    def test_category_browse(self, client, registry):
        """Test category browse."""
        response = client.get("/explore/daos", params={"category": "Gaming"})

        assert response.status_code == 200
        assert [d["dao_id"] for d in response.json()["items"]] == ["dao-100"]
        assert registry.calls[0] == ("get_daos_by_category", "Gaming", 0, 12)

    def test_search_with_filters(self, client, registry):
        """Test search with filters."""
        response = client.get(
            "/explore/daos",
            params={"search": "alpha", "category": "Gaming", "sort": "most_members", "min_members": 0},
        )

        assert response.status_code == 200
        assert [d["name"] for d in response.json()["items"]] == ["Alpha Arcade"]
        method, query, filters, sort, page, page_size = registry.calls[0]
        assert method == "search_daos"
        assert filters.category == "Gaming"
        assert filters.min_members == 0
        assert sort.value == "most_members"

    def test_invalid_page_size(self, client):
        """Test invalid page size."""
        response = client.get("/explore/daos", params={"page_size": 0})

        assert response.status_code == 422

    def test_unknown_sort(self, client):
        """Test unknown sort."""
        response = client.get("/explore/daos", params={"sort": "alphabetical"})

        assert response.status_code == 422

    def test_registry_timeout_maps_to_504(self, client, registry):
        """Test registry timeout maps to 504."""
        registry.failures["get_all_public_daos"] = RegistryTimeoutError()

        response = client.get("/explore/daos")

        assert response.status_code == 504
        detail = response.json()["detail"]
        assert detail["error_code"] == 504
        assert detail["retryable"] is True


class TestLookups:
    """Test the unpaginated lookup endpoints."""

    def test_trending(self, client):
        """Test trending."""
        response = client.get("/explore/trending", params={"limit": 3})

        assert response.status_code == 200
        assert [d["dao_id"] for d in response.json()] == ["dao-100", "dao-29", "dao-28"]

    def test_daos_by_creator(self, client):
        """Test DAOs by creator."""
        response = client.get(f"/explore/creators/{CREATOR}/daos")

        assert response.status_code == 200
        assert len(response.json()) == 31

    def test_dao_stats(self, client, registry):
        """Test DAO stats."""
        registry.stats["dao-1"] = {"dao_id": "dao-1", "member_count": 11, "total_staked": "18446744073709551616"}

        response = client.get("/explore/daos/dao-1/stats")

        assert response.status_code == 200
        assert response.json()["total_staked"] == 2 ** 64

    def test_missing_dao_stats_is_404(self, client):
        """Test missing DAO stats is 404."""
        response = client.get("/explore/daos/nonexistent/stats")

        assert response.status_code == 404


class TestAggregates:
    """Test the category, stats and health endpoints."""

    def test_categories(self, client):
        """Test categories."""
        response = client.get("/explore/categories")

        assert response.json() == ["All", "DeFi", "Gaming", "Social"]

    def test_stats(self, client):
        """Test stats."""
        body = client.get("/explore/stats").json()

        assert body["total_daos"] == 31
        assert body["total_tvl"] == 31_000_000

    def test_overview(self, client):
        """Test overview."""
        body = client.get("/explore/overview", params={"trending_limit": 2}).json()

        assert body["categories"][0] == "All"
        assert len(body["trending"]) == 2
        assert body["stats"]["public_daos"] == 31

    def test_registry_health(self, client):
        """Test registry health."""
        body = client.get("/explore/health").json()

        assert body["status"] == "healthy"
        assert body["total_daos"] == 31

    def test_service_health(self, client):
        """Test service health."""
        assert client.get("/healthz").json() == {"status": "ok"}
