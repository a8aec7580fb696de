"""
HTTP client for the DAO registry canister.

Calls registry methods through the JSON gateway and returns raw wire values.
No normalization happens here; see ``wire.py``.
"""
from typing import Any, Dict, List, Optional

import httpx

from dao_discovery.config.registry_settings import (
    DAO_REGISTRY_CANISTER_ID,
    REGISTRY_CONNECT_TIMEOUT_SECONDS,
    REGISTRY_GATEWAY_URL,
    REGISTRY_TIMEOUT_SECONDS,
)
from dao_discovery.data_models.discovery_schemas import SearchFilters, SortOption
from dao_discovery.registry.composer import encode_filters, encode_principal, encode_sort
from dao_discovery.registry.exceptions import (
    DiscoveryError,
    RegistryDecodeError,
    RegistryRejectedError,
    RegistryTimeoutError,
    RegistryTransportError,
    RegistryUnavailableError,
)
from dao_discovery.utils.logger import logger


def _opt(value: Any) -> List[Any]:
    return [] if value is None else [value]


class RegistryAPIClient:
    """
    Async HTTP client for the DAO registry.

    Provides methods to:
    - List, search and browse DAOs page by page
    - Fetch creator, trending and per-DAO statistics
    - Read registry-wide statistics, categories and health
    - Register DAOs and push metadata/statistics updates
    """

    def __init__(
        self,
        base_url: str = None,
        canister_id: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the registry client.

        Args:
            base_url: Gateway URL (default from REGISTRY_GATEWAY_URL env var)
            canister_id: Registry canister ID (default from DAO_REGISTRY_CANISTER_ID env var)
            timeout: Request timeout in seconds (default from REGISTRY_TIMEOUT_SECONDS)
            transport: Optional httpx transport, used to plug in a mock gateway
        """
        self.base_url = (base_url or REGISTRY_GATEWAY_URL).rstrip("/")
        self.canister_id = canister_id if canister_id is not None else DAO_REGISTRY_CANISTER_ID
        self.timeout = httpx.Timeout(
            timeout or REGISTRY_TIMEOUT_SECONDS,
            connect=REGISTRY_CONNECT_TIMEOUT_SECONDS,
        )
        self.client = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        self._closed = False

    def _method_url(self, kind: str, method: str) -> str:
        return f"{self.base_url}/api/canisters/{self.canister_id}/{kind}/{method}"

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Handle a gateway response and extract the reply value.

        Raises:
            RegistryRejectedError: If the gateway or canister reported an error
            RegistryDecodeError: If the body is not a gateway reply
        """
        try:
            data = response.json()
        except ValueError:
            if response.status_code >= 400:
                raise RegistryRejectedError(response.text or "Unknown error", response.status_code)
            raise RegistryDecodeError(f"Registry returned non-JSON body: {response.text[:200]!r}")

        if response.status_code >= 400:
            error_msg = "Unknown error"
            if isinstance(data, dict):
                error_msg = data.get("reject_message") or data.get("message") or data.get("error") or error_msg
            raise RegistryRejectedError(str(error_msg), response.status_code, data if isinstance(data, dict) else None)

        if not isinstance(data, dict):
            raise RegistryDecodeError("Registry reply is not a JSON object")

        for key in ("reject_message", "error", "err"):
            if key in data:
                raise RegistryRejectedError(str(data[key]), 500, data)

        if "reply" not in data:
            raise RegistryDecodeError("Registry reply is missing the 'reply' field", data)

        return data["reply"]

    async def _call(self, kind: str, method: str, args: List[Any]) -> Any:
        if self._closed:
            raise RegistryUnavailableError("DAO Registry client is closed")
        if not self.canister_id:
            raise RegistryUnavailableError("DAO Registry not available: DAO_REGISTRY_CANISTER_ID is not set")

        url = self._method_url(kind, method)
        try:
            response = await self.client.post(url, json={"args": args})
        except httpx.TimeoutException as e:
            logger.error(f"[RegistryAPI] {method} timed out: {e}")
            raise RegistryTimeoutError(f"{method} timed out after {self.timeout.read}s")
        except httpx.TransportError as e:
            logger.error(f"[RegistryAPI] {method} transport error: {e}")
            raise RegistryTransportError(f"DAO Registry unreachable: {e}")

        try:
            return self._handle_response(response)
        except DiscoveryError as e:
            logger.error(f"[RegistryAPI] {method} failed: {e.message}")
            raise

    async def query(self, method: str, *args: Any) -> Any:
        return await self._call("query", method, list(args))

    async def update(self, method: str, *args: Any) -> Any:
        """Issue an update call and unwrap its ``Result`` (``ok``/``err``)."""
        reply = await self._call("update", method, list(args))
        if isinstance(reply, dict):
            if "err" in reply:
                raise RegistryRejectedError(str(reply["err"]), 400, reply)
            if "ok" in reply:
                return reply["ok"]
        return reply

    # ==================
    # Listing Queries
    # ==================

    async def get_all_public_daos(self, page: int, page_size: int) -> Any:
        logger.info(f"[RegistryAPI] getAllPublicDAOs page={page} page_size={page_size}")
        return await self.query("getAllPublicDAOs", page, page_size)

    async def search_daos(
        self,
        query: str,
        filters: Optional[SearchFilters],
        sort: Optional[SortOption],
        page: int,
        page_size: int,
    ) -> Any:
        logger.info(f"[RegistryAPI] searchDAOs query={query!r} sort={sort} page={page} page_size={page_size}")
        return await self.query(
            "searchDAOs",
            query,
            encode_filters(filters),
            encode_sort(sort),
            page,
            page_size,
        )

    async def get_daos_by_category(self, category: str, page: int, page_size: int) -> Any:
        logger.info(f"[RegistryAPI] getDAOsByCategory category={category!r} page={page} page_size={page_size}")
        return await self.query("getDAOsByCategory", category, page, page_size)

    async def get_daos_by_creator(self, creator: str) -> Any:
        logger.info(f"[RegistryAPI] getDAOsByCreator creator={creator}")
        return await self.query("getDAOsByCreator", encode_principal(creator))

    async def get_trending_daos(self, limit: int) -> Any:
        logger.info(f"[RegistryAPI] getTrendingDAOs limit={limit}")
        return await self.query("getTrendingDAOs", limit)

    # ==================
    # Statistics Queries
    # ==================

    async def get_dao_stats(self, dao_id: str) -> Any:
        logger.info(f"[RegistryAPI] getDAOStats dao_id={dao_id}")
        return await self.query("getDAOStats", dao_id)

    async def get_supported_categories(self) -> Any:
        return await self.query("getSupportedCategories")

    async def get_registry_stats(self) -> Any:
        return await self.query("getRegistryStats")

    async def health(self) -> Any:
        return await self.query("health")

    # ==================
    # Update Calls
    # ==================

    async def register_dao(
        self,
        name: str,
        description: str,
        category: str,
        is_public: bool,
        dao_canister_id: str,
        website: Optional[str] = None,
        logo_url: Optional[str] = None,
        token_symbol: Optional[str] = None,
    ) -> Any:
        """
        Register a DAO with the registry.

        Returns:
            The registry-assigned ``dao_id``
        """
        logger.info(f"[RegistryAPI] registerDAO name={name!r} canister={dao_canister_id}")
        return await self.update(
            "registerDAO",
            name,
            description,
            category,
            is_public,
            encode_principal(dao_canister_id),
            _opt(website),
            _opt(logo_url),
            _opt(token_symbol),
        )

    async def update_dao_metadata(
        self,
        dao_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        is_public: Optional[bool] = None,
        website: Optional[str] = None,
        logo_url: Optional[str] = None,
    ) -> Any:
        """Update DAO metadata; ``None`` leaves a field unchanged."""
        logger.info(f"[RegistryAPI] updateDAOMetadata dao_id={dao_id}")
        return await self.update(
            "updateDAOMetadata",
            dao_id,
            _opt(name),
            _opt(description),
            _opt(category),
            _opt(is_public),
            _opt(website),
            _opt(logo_url),
        )

    async def update_dao_stats(self, dao_id: str, stats: Dict[str, Any]) -> Any:
        """
        Push statistics for a DAO; fields missing from ``stats`` are left unchanged.

        Accepted keys: member_count, total_proposals, active_proposals,
        total_staked, treasury_balance, governance_participation.
        """
        logger.info(f"[RegistryAPI] updateDAOStats dao_id={dao_id}")
        return await self.update(
            "updateDAOStats",
            dao_id,
            _opt(stats.get("member_count")),
            _opt(stats.get("total_proposals")),
            _opt(stats.get("active_proposals")),
            _opt(stats.get("total_staked")),
            _opt(stats.get("treasury_balance")),
            _opt(stats.get("governance_participation")),
        )

    async def aclose(self):
        """Close the HTTP client."""
        if not self._closed:
            self._closed = True
            await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
