"""Tests for the discovery client against an in-memory registry."""
import asyncio

import httpx
import pytest

from ...data_models.discovery_schemas import RegistryQuery, SearchFilters, SortOption
from ..composer import compose_query
from ..discovery_client import ClientState, DiscoveryClient
from ..exceptions import (
    DiscoveryError,
    InvalidQueryError,
    RegistryDecodeError,
    RegistryRejectedError,
    RegistryTimeoutError,
    RegistryTransportError,
)
from .factories import CREATOR, OTHER_CREATOR, FakeRegistryAPI, make_raw_dao


def _registry(count: int = 30, **kwargs) -> FakeRegistryAPI:
    return FakeRegistryAPI([make_raw_dao(i) for i in range(count)], **kwargs)


class TestListing:
    """Test the paginated listing modes."""

    async def test_first_page_of_thirty(self):
        """Test 30 public DAOs with page 0 of size 12."""
        client = DiscoveryClient(_registry(30))

        result = await client.get_all_public_daos(0, 12)

        assert len(result.items) == 12
        assert result.total_count == 30
        assert result.has_next is True
        assert result.has_previous is False

    async def test_last_page(self):
        """Test last page."""
        client = DiscoveryClient(_registry(30))

        result = await client.get_all_public_daos(2, 12)

        assert [d.dao_id for d in result.items] == [f"dao-{i}" for i in range(24, 30)]
        assert result.has_next is False
        assert result.has_previous is True

    async def test_private_daos_not_listed(self):
        """Test private DAOs not listed."""
        records = [make_raw_dao(1), make_raw_dao(2, is_public=False)]
        client = DiscoveryClient(FakeRegistryAPI(records))

        result = await client.get_all_public_daos()

        assert [d.dao_id for d in result.items] == ["dao-1"]

    async def test_category_browse(self):
        """Test category browse."""
        records = [make_raw_dao(1), make_raw_dao(2, category="Gaming"), make_raw_dao(3, category="Gaming")]
        api = FakeRegistryAPI(records)
        client = DiscoveryClient(api)

        result = await client.get_daos_by_category("Gaming")

        assert [d.dao_id for d in result.items] == ["dao-2", "dao-3"]
        assert api.calls == [("get_daos_by_category", "Gaming", 0, 12)]

    async def test_search_with_no_matches(self):
        """Test a DeFi search for "alpha" with nothing matching."""
        api = _registry(5)
        client = DiscoveryClient(api)

        result = await client.search_daos("alpha", SearchFilters(category="DeFi"), SortOption.NEWEST)

        assert result.items == []
        assert result.total_count == 0
        assert result.has_next is False
        assert result.has_previous is False
        method, query, filters, sort, page, page_size = api.calls[0]
        assert (method, query) == ("search_daos", "alpha")
        assert filters.category == "DeFi"
        assert sort is SortOption.NEWEST

    async def test_search_matches_name(self):
        """Test search matches name."""
        records = [make_raw_dao(1, name="Alpha Guild"), make_raw_dao(2, name="Beta Club")]
        client = DiscoveryClient(FakeRegistryAPI(records))

        result = await client.search_daos("alpha")

        assert [d.name for d in result.items] == ["Alpha Guild"]

    async def test_search_sort_given_as_string(self):
        """Test search sort given as string."""
        api = _registry(1)
        client = DiscoveryClient(api)

        await client.search_daos("dao", sort="highest_tvl")

        assert api.calls[0][3] is SortOption.HIGHEST_TVL


class TestRunQuery:
    """Test composed requests reach the operation of their mode."""

    @pytest.mark.parametrize(
        "search_text,category,expected_method",
        [
            ("", "All", "get_all_public_daos"),
            ("", "DeFi", "get_daos_by_category"),
            ("dao", "DeFi", "search_daos"),
        ],
    )
    async def test_dispatch(self, search_text, category, expected_method):
        """Test dispatch."""
        api = _registry(3)
        client = DiscoveryClient(api)

        await client.run_query(compose_query(search_text, category, page=0, page_size=12))

        assert [call[0] for call in api.calls] == [expected_method]

    async def test_category_mode_sends_no_filters(self):
        """Test category mode sends no filters."""
        api = _registry(3)
        client = DiscoveryClient(api)

        request = compose_query("", "DeFi", SearchFilters(min_members=100), SortOption.OLDEST, 1, 2)
        await client.run_query(request)

        assert api.calls == [("get_daos_by_category", "DeFi", 1, 2)]

    async def test_search_mode_carries_category_filter(self):
        """Test search mode carries category filter."""
        api = _registry(3)
        client = DiscoveryClient(api)

        await client.run_query(RegistryQuery(mode="search", query="dao", filters=SearchFilters(category="Gaming")))

        assert api.calls[0][2].category == "Gaming"


class TestLookups:
    """Test the unpaginated reads."""

    async def test_daos_by_creator(self):
        """Test DAOs by creator."""
        records = [
            make_raw_dao(1),
            make_raw_dao(2, creator_principal={"__principal__": OTHER_CREATOR}),
            make_raw_dao(3, is_public=False),
        ]
        api = FakeRegistryAPI(records)
        client = DiscoveryClient(api)

        daos = await client.get_daos_by_creator(f" {CREATOR} ")

        assert [d.dao_id for d in daos] == ["dao-1", "dao-3"]
        assert all(d.creator_principal == CREATOR for d in daos)
        assert api.calls == [("get_daos_by_creator", CREATOR)]

    async def test_trending_fewer_than_limit(self):
        """Test a limit of 6 over 3 DAOs returns all 3 in registry order."""
        client = DiscoveryClient(_registry(3))

        trending = await client.get_trending_daos(6)

        assert [d.dao_id for d in trending] == ["dao-2", "dao-1", "dao-0"]

    async def test_trending_truncates_surplus(self):
        """Test trending truncates surplus."""
        api = _registry(10)

        async def overfull(limit):
            api.calls.append(("get_trending_daos", limit))
            return [make_raw_dao(i) for i in range(limit + 4)]

        api.get_trending_daos = overfull
        client = DiscoveryClient(api)

        trending = await client.get_trending_daos(6)

        assert len(trending) == 6

    async def test_dao_stats_found(self):
        """Test DAO stats found."""
        api = _registry(1)
        api.stats["dao-0"] = {"dao_id": "dao-0", "member_count": "42", "governance_participation": 0.5}
        client = DiscoveryClient(api)

        stats = await client.get_dao_stats("dao-0")

        assert stats.member_count == 42
        assert stats.governance_participation == pytest.approx(0.5)

    async def test_dao_stats_missing_is_none(self):
        """Test a missing DAO is not an error."""
        client = DiscoveryClient(_registry(1))

        assert await client.get_dao_stats("nonexistent") is None
        assert client.error is None
        assert client.state is ClientState.SUCCESS

    async def test_supported_categories(self):
        """Test supported categories."""
        client = DiscoveryClient(_registry(1, categories=["DeFi", "Art"]))

        assert await client.get_supported_categories() == ["DeFi", "Art"]

    async def test_registry_stats(self):
        """Test registry stats."""
        records = [make_raw_dao(1), make_raw_dao(2, category="Gaming", is_public=False)]
        client = DiscoveryClient(FakeRegistryAPI(records))

        stats = await client.get_registry_stats()

        assert stats.total_daos == 2
        assert stats.public_daos == 1
        assert stats.total_tvl == 2000000
        assert {c.category: c.count for c in stats.categories}["Gaming"] == 1

    async def test_health_check(self):
        """Test health check."""
        health = await DiscoveryClient(_registry(4)).health_check()

        assert health.status == "healthy"
        assert health.total_daos == 4


class TestValidation:
    """Test arguments rejected before any remote call."""

    @pytest.mark.parametrize(
        "operation",
        [
            lambda c: c.get_all_public_daos(-1, 12),
            lambda c: c.get_all_public_daos(0, 0),
            lambda c: c.get_daos_by_category("  "),
            lambda c: c.search_daos("dao", sort="alphabetical"),
            lambda c: c.get_daos_by_creator(""),
            lambda c: c.get_trending_daos(0),
            lambda c: c.get_dao_stats(""),
        ],
    )
    async def test_invalid_arguments(self, operation):
        """Test invalid arguments."""
        api = _registry(3)
        client = DiscoveryClient(api)

        with pytest.raises(InvalidQueryError):
            await operation(client)

        assert api.calls == []
        assert client.error is not None
        assert client.loading is False


class TestStateFlags:
    """Test the loading/error flags around remote calls."""

    async def test_initial_state(self):
        """Test initial state."""
        client = DiscoveryClient(_registry(1))

        assert client.loading is False
        assert client.error is None
        assert client.state is ClientState.IDLE

    async def test_loading_while_in_flight(self):
        """Test loading while in flight."""
        api = _registry(3)
        api.gates["get_all_public_daos"] = asyncio.Event()
        client = DiscoveryClient(api)

        task = asyncio.create_task(client.get_all_public_daos())
        await asyncio.sleep(0)
        assert client.loading is True
        assert client.state is ClientState.LOADING

        api.gates["get_all_public_daos"].set()
        await task
        assert client.loading is False
        assert client.state is ClientState.SUCCESS

    async def test_loading_counts_overlapping_calls(self):
        """Test loading stays set until the last overlapping call finishes."""
        api = _registry(3)
        api.gates["get_trending_daos"] = asyncio.Event()
        client = DiscoveryClient(api)

        held = asyncio.create_task(client.get_trending_daos(3))
        await asyncio.sleep(0)
        await client.get_all_public_daos()
        assert client.loading is True

        api.gates["get_trending_daos"].set()
        await held
        assert client.loading is False

    async def test_failure_sets_error_and_clears_loading(self):
        """Test failure sets error and clears loading."""
        api = _registry(3)
        api.failures["get_registry_stats"] = RegistryTimeoutError()
        client = DiscoveryClient(api)

        with pytest.raises(RegistryTimeoutError):
            await client.get_registry_stats()

        assert client.loading is False
        assert client.error == "DAO Registry request timed out"
        assert client.state is ClientState.ERROR

    async def test_error_cleared_by_next_call(self):
        """Test error cleared by next call."""
        api = _registry(3)
        api.failures["get_supported_categories"] = RegistryRejectedError("Canister trapped")
        client = DiscoveryClient(api)

        with pytest.raises(RegistryRejectedError):
            await client.get_supported_categories()
        assert client.error == "Canister trapped"

        await client.get_all_public_daos()
        assert client.error is None

    @pytest.mark.parametrize(
        "raised,expected",
        [
            (httpx.ConnectError("refused"), RegistryTransportError),
            (httpx.ReadTimeout("slow"), RegistryTimeoutError),
            (KeyError("items"), RegistryDecodeError),
            (RuntimeError("boom"), DiscoveryError),
        ],
    )
    async def test_foreign_exceptions_are_classified(self, raised, expected):
        """Test failures from any layer surface as discovery errors."""
        api = _registry(3)
        api.failures["health"] = raised
        client = DiscoveryClient(api)

        with pytest.raises(expected) as exc_info:
            await client.health_check()

        assert exc_info.value.__cause__ is raised
        assert client.error == exc_info.value.message

    async def test_malformed_page_reply(self):
        """Test malformed page reply."""
        api = _registry(3)

        async def broken(page, page_size):
            return "not a page"

        api.get_all_public_daos = broken
        client = DiscoveryClient(api)

        with pytest.raises(RegistryDecodeError):
            await client.get_all_public_daos()
        assert client.state is ClientState.ERROR


class TestLifecycle:
    """Test closing the underlying registry client."""

    async def test_context_manager_closes_api(self):
        """Test context manager closes API."""
        api = _registry(1)

        async with DiscoveryClient(api) as client:
            await client.get_all_public_daos()

        assert api.closed is True
