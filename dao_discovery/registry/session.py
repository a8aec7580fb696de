"""
Discovery session: the state of one explore view.

Holds the search text, category, sort, filters, page cursor and the
accumulated item list, and drives the discovery client from them. One session
per view; sessions never share state.

Request ordering: every load takes a sequence number. When a response arrives
for a load that is no longer the latest issued, it is discarded (with
``discard_stale``) instead of overwriting newer results.
"""
from typing import List, Optional, Union

from dao_discovery.config.registry_settings import (
    DISCOVERY_DEDUPE_ON_APPEND,
    DISCOVERY_DISCARD_STALE,
    DISCOVERY_PAGE_SIZE,
    DISCOVERY_TRENDING_LIMIT,
)
from dao_discovery.data_models.discovery_schemas import (
    ALL_CATEGORIES,
    DEFAULT_SORT,
    DAOMetadata,
    PaginationResult,
    RegistryOverview,
    RegistryQuery,
    SearchFilters,
    SortOption,
)
from dao_discovery.registry.composer import coerce_sort, compose_query
from dao_discovery.registry.discovery_client import DiscoveryClient
from dao_discovery.registry.exceptions import DiscoveryError
from dao_discovery.registry.pagination import merge_items, total_pages
from dao_discovery.registry.stats_reader import AggregateStatsReader
from dao_discovery.utils.logger import logger


class DiscoverySession:
    """
    Controller for one discovery view.

    Changing the search text, category, sort or filters always restarts at
    page 0 and replaces the displayed items. ``load_more`` appends the next
    page. A failed load keeps the items already on screen.
    """

    def __init__(
        self,
        client: DiscoveryClient,
        page_size: int = DISCOVERY_PAGE_SIZE,
        discard_stale: bool = DISCOVERY_DISCARD_STALE,
        dedupe_on_append: bool = DISCOVERY_DEDUPE_ON_APPEND,
        trending_limit: int = DISCOVERY_TRENDING_LIMIT,
    ):
        self.client = client
        self.stats_reader = AggregateStatsReader(client)
        self.page_size = page_size
        self.discard_stale = discard_stale
        self.dedupe_on_append = dedupe_on_append
        self.trending_limit = trending_limit

        self.search_text = ""
        self.category = ALL_CATEGORIES
        self.sort: SortOption = DEFAULT_SORT
        self.filters = SearchFilters()

        self.items: List[DAOMetadata] = []
        self.total_count = 0
        self.has_more = False
        self.last_result: Optional[PaginationResult] = None
        self.overview = RegistryOverview()
        self.error: Optional[str] = None

        self._sequence = 0
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def total_pages(self) -> int:
        return total_pages(self.last_result)

    def showing_label(self) -> str:
        return f"Showing {len(self.items)} of {self.total_count} DAOs"

    def compose(self, page: int = 0) -> RegistryQuery:
        """The registry request the current inputs map to."""
        return compose_query(
            self.search_text,
            self.category,
            None if self.filters.is_empty() else self.filters,
            self.sort,
            page,
            self.page_size,
        )

    def _is_stale(self, token: int) -> bool:
        return self.discard_stale and token != self._sequence

    async def load(self, page: int = 0, append: bool = False) -> Optional[PaginationResult]:
        """
        Fetch one page for the current inputs.

        Args:
            page: 0-based page to fetch
            append: Concatenate onto the displayed items instead of replacing

        Returns:
            The fetched page, or None when a newer load superseded this one

        Raises:
            DiscoveryError: If the fetch fails and this load is still current
        """
        self.error = None
        try:
            request = self.compose(page)
        except DiscoveryError as e:
            self.error = e.message
            raise

        self._sequence += 1
        token = self._sequence
        self._in_flight += 1
        logger.info(f"[DiscoverySession] Load #{token}: mode={request.mode.value} page={page} append={append}")

        try:
            result = await self.client.run_query(request)
        except DiscoveryError as e:
            if self._is_stale(token):
                logger.info(f"[DiscoverySession] Ignoring failure of superseded load #{token}: {e.message}")
                return None
            self.error = e.message
            if not append:
                # Displayed items belong to the previous inputs
                self.has_more = False
            raise
        finally:
            self._in_flight -= 1

        if self._is_stale(token):
            logger.info(f"[DiscoverySession] Discarding superseded load #{token} (latest #{self._sequence})")
            return None

        self.items = merge_items(self.items, result.items, append, dedupe=self.dedupe_on_append)
        self.page = result.page
        self.total_count = result.total_count
        self.has_more = result.has_next
        self.last_result = result
        return result

    async def load_more(self) -> Optional[PaginationResult]:
        """Append the next page, when there is one and nothing is loading."""
        if not self.has_more or self.loading:
            return None
        return await self.load(self.page + 1, append=True)

    # Input changes restart pagination at page 0; `page` moves only with a loaded result

    async def set_search_text(self, text: str) -> Optional[PaginationResult]:
        self.search_text = text or ""
        return await self.load(0, append=False)

    async def set_category(self, category: str) -> Optional[PaginationResult]:
        self.category = category or ALL_CATEGORIES
        return await self.load(0, append=False)

    async def set_sort(self, sort: Union[SortOption, str]) -> Optional[PaginationResult]:
        self.sort = coerce_sort(sort) or DEFAULT_SORT
        return await self.load(0, append=False)

    async def set_filters(self, filters: Optional[SearchFilters]) -> Optional[PaginationResult]:
        self.filters = filters or SearchFilters()
        return await self.load(0, append=False)

    async def load_overview(self) -> RegistryOverview:
        self.overview = await self.stats_reader.load_overview(self.trending_limit)
        return self.overview

    async def initialize(self) -> Optional[PaginationResult]:
        """Initial view load: overview first, then the first page."""
        await self.load_overview()
        return await self.load(0, append=False)

    async def refresh(self) -> Optional[PaginationResult]:
        """Reload page 0 and the overview."""
        result = await self.load(0, append=False)
        await self.load_overview()
        return result

    def reset(self) -> None:
        """Clear inputs and results; in-flight loads become stale."""
        self._sequence += 1
        self.search_text = ""
        self.category = ALL_CATEGORIES
        self.sort = DEFAULT_SORT
        self.filters = SearchFilters()
        self.page = 0
        self.items = []
        self.total_count = 0
        self.has_more = False
        self.last_result = None
        self.error = None
