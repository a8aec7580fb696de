"""
Aggregate statistics reader.

Read-only registry overview: registry-wide counts, the trending list and the
category list. Typically loaded once per page view rather than per keystroke.
"""
import asyncio
from typing import List

from dao_discovery.config.registry_settings import DISCOVERY_TRENDING_LIMIT
from dao_discovery.data_models.discovery_schemas import (
    ALL_CATEGORIES,
    DAOMetadata,
    RegistryOverview,
    RegistryStats,
)
from dao_discovery.registry.discovery_client import DiscoveryClient
from dao_discovery.utils.logger import logger


def with_all_sentinel(categories: List[str]) -> List[str]:
    """Prepend the "All" choice to the registry's categories."""
    return [ALL_CATEGORIES] + [c for c in categories if c != ALL_CATEGORIES]


class AggregateStatsReader:
    """Registry overview on top of a discovery client."""

    def __init__(self, client: DiscoveryClient):
        self.client = client

    async def get_registry_stats(self) -> RegistryStats:
        return await self.client.get_registry_stats()

    async def get_trending_daos(self, limit: int = DISCOVERY_TRENDING_LIMIT) -> List[DAOMetadata]:
        return await self.client.get_trending_daos(limit)

    async def get_categories(self) -> List[str]:
        return with_all_sentinel(await self.client.get_supported_categories())

    async def load_overview(self, trending_limit: int = DISCOVERY_TRENDING_LIMIT) -> RegistryOverview:
        """
        Fetch categories, registry stats and trending DAOs concurrently.

        Raises:
            DiscoveryError: If any of the three reads fails
        """
        categories, stats, trending = await asyncio.gather(
            self.client.get_supported_categories(),
            self.client.get_registry_stats(),
            self.client.get_trending_daos(trending_limit),
        )
        logger.info(
            f"[StatsReader] Overview loaded: {len(categories)} categories, "
            f"{stats.total_daos} DAOs, {len(trending)} trending"
        )
        return RegistryOverview(
            categories=with_all_sentinel(categories),
            stats=stats,
            trending=trending,
        )
