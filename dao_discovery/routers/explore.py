"""FastAPI router for DAO discovery.

Provides HTTP endpoints for:
- Paginated listing, category browse and search (one composed query)
- Trending DAOs, categories, registry statistics and the overview bundle
- Per-DAO statistics and DAOs by creator
"""

from typing import List, Optional

from fastapi import Depends, HTTPException, Query
from fastapi.routing import APIRouter

from dao_discovery.config.registry_settings import (
    DISCOVERY_MAX_PAGE_SIZE,
    DISCOVERY_PAGE_SIZE,
    DISCOVERY_TRENDING_LIMIT,
)
from dao_discovery.data_models.discovery_schemas import (
    ALL_CATEGORIES,
    DEFAULT_SORT,
    DAOMetadata,
    DAOStats,
    PaginationResult,
    RegistryHealth,
    RegistryOverview,
    RegistryStats,
    SearchFilters,
    SortOption,
)
from dao_discovery.registry.api_client import RegistryAPIClient
from dao_discovery.registry.composer import compose_query
from dao_discovery.registry.discovery_client import DiscoveryClient
from dao_discovery.registry.exceptions import DiscoveryError
from dao_discovery.registry.stats_reader import AggregateStatsReader
from dao_discovery.utils.logger import logger

router = APIRouter()

# Shared connection pool; discovery state stays per request
_registry_api: Optional[RegistryAPIClient] = None


def get_registry_api() -> RegistryAPIClient:
    """Get or create the shared registry API client."""
    global _registry_api
    if _registry_api is None:
        _registry_api = RegistryAPIClient()
        logger.info(f"Registry API client created for {_registry_api.base_url}")
    return _registry_api


async def close_registry_api() -> None:
    global _registry_api
    if _registry_api is not None:
        await _registry_api.aclose()
        _registry_api = None


def get_discovery_client(api: RegistryAPIClient = Depends(get_registry_api)) -> DiscoveryClient:
    return DiscoveryClient(api)


def _http_error(error: DiscoveryError) -> HTTPException:
    return HTTPException(status_code=error.code, detail=error.to_dict())


# =============================================================================
# Listing Endpoints
# =============================================================================

@router.get("/daos", response_model=PaginationResult[DAOMetadata])
async def list_daos(
    search: str = Query("", description="Free-text search; selects search mode when non-empty"),
    category: str = Query(ALL_CATEGORIES, description="Category, or 'All'"),
    sort: SortOption = Query(DEFAULT_SORT),
    page: int = Query(0, ge=0),
    page_size: int = Query(DISCOVERY_PAGE_SIZE, ge=1, le=DISCOVERY_MAX_PAGE_SIZE),
    min_members: Optional[int] = Query(None, ge=0),
    max_members: Optional[int] = Query(None, ge=0),
    created_after: Optional[int] = Query(None),
    created_before: Optional[int] = Query(None),
    is_public: Optional[bool] = Query(None),
    client: DiscoveryClient = Depends(get_discovery_client),
):
    """
    One page of DAOs for the explore grid.

    Search text wins over category; category wins over the unfiltered
    listing. Advanced filters and sort only apply in search mode.
    """
    filters = SearchFilters(
        min_members=min_members,
        max_members=max_members,
        created_after=created_after,
        created_before=created_before,
        is_public=is_public,
    )
    try:
        request = compose_query(
            search,
            category,
            None if filters.is_empty() else filters,
            sort,
            page,
            page_size,
        )
        return await client.run_query(request)
    except DiscoveryError as e:
        raise _http_error(e)


@router.get("/trending", response_model=List[DAOMetadata])
async def trending_daos(
    limit: int = Query(DISCOVERY_TRENDING_LIMIT, ge=1, le=DISCOVERY_MAX_PAGE_SIZE),
    client: DiscoveryClient = Depends(get_discovery_client),
):
    try:
        return await client.get_trending_daos(limit)
    except DiscoveryError as e:
        raise _http_error(e)


@router.get("/creators/{creator_id}/daos", response_model=List[DAOMetadata])
async def daos_by_creator(creator_id: str, client: DiscoveryClient = Depends(get_discovery_client)):
    try:
        return await client.get_daos_by_creator(creator_id)
    except DiscoveryError as e:
        raise _http_error(e)


# =============================================================================
# Statistics Endpoints
# =============================================================================

@router.get("/daos/{dao_id}/stats", response_model=DAOStats)
async def dao_stats(dao_id: str, client: DiscoveryClient = Depends(get_discovery_client)):
    try:
        stats = await client.get_dao_stats(dao_id)
    except DiscoveryError as e:
        raise _http_error(e)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"DAO '{dao_id}' not found")
    return stats


@router.get("/categories", response_model=List[str])
async def categories(client: DiscoveryClient = Depends(get_discovery_client)):
    """Supported categories with the 'All' choice first."""
    try:
        return await AggregateStatsReader(client).get_categories()
    except DiscoveryError as e:
        raise _http_error(e)


@router.get("/stats", response_model=RegistryStats)
async def registry_stats(client: DiscoveryClient = Depends(get_discovery_client)):
    try:
        return await client.get_registry_stats()
    except DiscoveryError as e:
        raise _http_error(e)


@router.get("/overview", response_model=RegistryOverview)
async def overview(
    trending_limit: int = Query(DISCOVERY_TRENDING_LIMIT, ge=1, le=DISCOVERY_MAX_PAGE_SIZE),
    client: DiscoveryClient = Depends(get_discovery_client),
):
    """Categories, registry statistics and trending DAOs in one call."""
    try:
        return await AggregateStatsReader(client).load_overview(trending_limit)
    except DiscoveryError as e:
        raise _http_error(e)


@router.get("/health", response_model=RegistryHealth)
async def registry_health(client: DiscoveryClient = Depends(get_discovery_client)):
    try:
        return await client.health_check()
    except DiscoveryError as e:
        raise _http_error(e)
