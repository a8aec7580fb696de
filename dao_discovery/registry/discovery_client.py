"""
Discovery client for the global DAO registry.

Wraps the registry API with normalization, pagination envelopes and the
shared ``loading``/``error`` state a discovery view renders from.

Every operation:
- clears ``error`` and counts itself in-flight before the remote call
- leaves the in-flight count in a ``finally`` path, so ``loading`` never sticks
- records the failure message in ``error`` and re-raises a ``DiscoveryError``

There is no retry at this layer; callers re-invoke the operation.
"""
from enum import Enum
from typing import Awaitable, Callable, List, Optional, TypeVar, Union

from dao_discovery.config.registry_settings import DISCOVERY_PAGE_SIZE, DISCOVERY_TRENDING_LIMIT
from dao_discovery.data_models.discovery_schemas import (
    DAOMetadata,
    DAOStats,
    PaginationResult,
    QueryMode,
    RegistryHealth,
    RegistryQuery,
    RegistryStats,
    SearchFilters,
    SortOption,
)
from dao_discovery.registry.api_client import RegistryAPIClient
from dao_discovery.registry.composer import coerce_sort, validate_paging
from dao_discovery.registry.exceptions import InvalidQueryError, classify_exception
from dao_discovery.registry.pagination import build_page
from dao_discovery.registry.wire import WireNormalizer
from dao_discovery.utils.logger import logger

R = TypeVar("R")


class ClientState(str, Enum):
    """Per-session request state."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class DiscoveryClient:
    """
    DAO discovery and search through the registry.

    Usage:
        async with DiscoveryClient() as discovery:
            page = await discovery.get_all_public_daos(0, 12)
            results = await discovery.search_daos(
                "alpha",
                SearchFilters(category="DeFi", min_members=10),
                SortOption.MOST_MEMBERS,
            )
            trending = await discovery.get_trending_daos(6)
    """

    def __init__(
        self,
        api: Optional[RegistryAPIClient] = None,
        normalizer: Optional[WireNormalizer] = None,
    ):
        self.api = api or RegistryAPIClient()
        self.normalizer = normalizer or WireNormalizer()
        self.error: Optional[str] = None
        self._in_flight = 0
        self._last_outcome = ClientState.IDLE

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def state(self) -> ClientState:
        if self._in_flight > 0:
            return ClientState.LOADING
        return self._last_outcome

    async def _run(self, operation: str, call: Callable[[], Awaitable[R]]) -> R:
        self._in_flight += 1
        self.error = None
        try:
            result = await call()
        except Exception as e:
            error = classify_exception(e)
            self.error = error.message
            self._last_outcome = ClientState.ERROR
            logger.error(f"[DiscoveryClient] {operation} failed: {error.message}")
            if error is e:
                raise
            raise error from e
        else:
            self._last_outcome = ClientState.SUCCESS
            return result
        finally:
            self._in_flight -= 1

    # ==================
    # Paginated listings
    # ==================

    async def get_all_public_daos(
        self,
        page: int = 0,
        page_size: int = DISCOVERY_PAGE_SIZE,
    ) -> PaginationResult[DAOMetadata]:
        """Listing mode: every public DAO, page by page."""
        async def call():
            validate_paging(page, page_size)
            raw = await self.api.get_all_public_daos(page, page_size)
            return build_page(raw, self.normalizer.normalize_daos, page, page_size)

        return await self._run("Get All Public DAOs", call)

    async def get_daos_by_category(
        self,
        category: str,
        page: int = 0,
        page_size: int = DISCOVERY_PAGE_SIZE,
    ) -> PaginationResult[DAOMetadata]:
        """Category mode: DAOs of one category, no text, filters or sort."""
        async def call():
            validate_paging(page, page_size)
            if not category or not category.strip():
                raise InvalidQueryError("category must not be empty")
            raw = await self.api.get_daos_by_category(category, page, page_size)
            return build_page(raw, self.normalizer.normalize_daos, page, page_size)

        return await self._run("Get DAOs by Category", call)

    async def search_daos(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        sort: Union[SortOption, str, None] = None,
        page: int = 0,
        page_size: int = DISCOVERY_PAGE_SIZE,
    ) -> PaginationResult[DAOMetadata]:
        """
        Search mode: free-text search with optional filters and sort.

        Args:
            query: Search text matched by the registry
            filters: Advanced filters; absent fields impose no constraint
            sort: Result order; the registry default applies when omitted
            page: 0-based page index
            page_size: Items per page

        Returns:
            PaginationResult of normalized DAOs
        """
        async def call():
            validate_paging(page, page_size)
            raw = await self.api.search_daos(query, filters, coerce_sort(sort), page, page_size)
            return build_page(raw, self.normalizer.normalize_daos, page, page_size)

        return await self._run("Search DAOs", call)

    async def run_query(self, request: RegistryQuery) -> PaginationResult[DAOMetadata]:
        """Dispatch a composed query to the operation of its mode."""
        if request.mode is QueryMode.SEARCH:
            return await self.search_daos(
                request.query or "",
                request.filters,
                request.sort,
                request.page,
                request.page_size,
            )
        if request.mode is QueryMode.CATEGORY:
            return await self.get_daos_by_category(request.category, request.page, request.page_size)
        return await self.get_all_public_daos(request.page, request.page_size)

    # ==================
    # Unpaginated lookups
    # ==================

    async def get_daos_by_creator(self, creator_id: str) -> List[DAOMetadata]:
        """Every DAO authored by the given principal."""
        async def call():
            creator = (creator_id or "").strip()
            if not creator:
                raise InvalidQueryError("creator_id must not be empty")
            raw = await self.api.get_daos_by_creator(creator)
            return self.normalizer.normalize_daos(raw)

        return await self._run("Get DAOs by Creator", call)

    async def get_trending_daos(self, limit: int = DISCOVERY_TRENDING_LIMIT) -> List[DAOMetadata]:
        """
        Top DAOs by the registry's own activity ranking.

        The ranking is not recomputed here. ``limit`` is a strict upper bound;
        fewer items are returned when fewer DAOs qualify.
        """
        async def call():
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise InvalidQueryError(f"limit must be a positive integer, got {limit!r}")
            raw = await self.api.get_trending_daos(limit)
            daos = self.normalizer.normalize_daos(raw)
            if len(daos) > limit:
                logger.warning(f"[DiscoveryClient] Registry returned {len(daos)} trending DAOs for limit {limit}; truncating")
                daos = daos[:limit]
            return daos

        return await self._run("Get Trending DAOs", call)

    async def get_dao_stats(self, dao_id: str) -> Optional[DAOStats]:
        """Statistics for one DAO, or ``None`` when the registry has no such DAO."""
        async def call():
            if not dao_id or not dao_id.strip():
                raise InvalidQueryError("dao_id must not be empty")
            raw = await self.api.get_dao_stats(dao_id)
            return self.normalizer.normalize_dao_stats(raw)

        return await self._run("Get DAO Stats", call)

    async def get_supported_categories(self) -> List[str]:
        """Categories known to the registry. The "All" sentinel is not included."""
        async def call():
            raw = await self.api.get_supported_categories()
            return self.normalizer.normalize_categories(raw)

        return await self._run("Get Supported Categories", call)

    async def get_registry_stats(self) -> RegistryStats:
        async def call():
            raw = await self.api.get_registry_stats()
            return self.normalizer.normalize_registry_stats(raw)

        return await self._run("Get Registry Stats", call)

    async def health_check(self) -> RegistryHealth:
        async def call():
            raw = await self.api.health()
            return self.normalizer.normalize_health(raw)

        return await self._run("Registry Health Check", call)

    async def aclose(self):
        await self.api.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
