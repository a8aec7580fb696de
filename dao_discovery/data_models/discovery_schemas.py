"""
Pydantic schemas for DAO discovery view-models and request parameters.

Wire integers are carried as plain Python ints, so counts, amounts and
timestamps of any magnitude survive normalization without truncation.
"""
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

ALL_CATEGORIES = "All"


class SortOption(str, Enum):
    """Closed set of listing orders understood by the registry."""
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_MEMBERS = "most_members"
    MOST_ACTIVE = "most_active"
    HIGHEST_TVL = "highest_tvl"


DEFAULT_SORT = SortOption.NEWEST


class QueryMode(str, Enum):
    """Mutually exclusive request shapes against the registry."""
    SEARCH = "search"
    CATEGORY = "category"
    LISTING = "listing"


# ==================
# View-models
# ==================

class DAOMetadata(BaseModel):
    """Normalized, UI-safe DAO record."""
    dao_id: str = ""
    name: str = ""
    description: str = ""
    category: str = ""
    creator_principal: str = ""
    creation_date: int = 0
    member_count: int = 0
    active_proposals: int = 0
    total_value_locked: int = 0
    is_public: bool = False
    dao_canister_id: str = ""
    website: Optional[str] = None
    logo_url: Optional[str] = None
    logo_asset_id: Optional[str] = None
    logo_type: Optional[str] = None
    token_symbol: Optional[str] = None
    last_activity: int = 0

    model_config = {"frozen": True}


class DAOStats(BaseModel):
    """Per-DAO aggregate statistics kept by the registry."""
    dao_id: str = ""
    member_count: int = 0
    total_proposals: int = 0
    active_proposals: int = 0
    total_staked: int = 0
    treasury_balance: int = 0
    governance_participation: float = 0.0
    last_updated: int = 0

    model_config = {"frozen": True}


class CategoryCount(BaseModel):
    category: str
    count: int = 0


class RegistryStats(BaseModel):
    """Registry-wide counts."""
    total_daos: int = 0
    public_daos: int = 0
    total_members: int = 0
    total_tvl: int = 0
    categories: List[CategoryCount] = Field(default_factory=list)


class RegistryHealth(BaseModel):
    status: str = "unknown"
    timestamp: int = 0
    total_daos: int = 0


class RegistryOverview(BaseModel):
    """Data an explore view loads once on mount."""
    categories: List[str] = Field(default_factory=list, description="Supported categories, 'All' first")
    stats: RegistryStats = Field(default_factory=RegistryStats)
    trending: List[DAOMetadata] = Field(default_factory=list)


# ==================
# Pagination Envelope
# ==================

class PaginationResult(BaseModel, Generic[T]):
    """
    One page of a listing.

    Produced through ``build_page`` so that ``has_previous == (page > 0)``,
    ``has_next == ((page + 1) * page_size < total_count)`` and
    ``len(items) <= page_size`` always hold.
    """
    items: List[T] = Field(default_factory=list)
    total_count: int = 0
    page: int = 0
    page_size: int = 0
    has_next: bool = False
    has_previous: bool = False


# ==================
# Request Schemas
# ==================

class SearchFilters(BaseModel):
    """Advanced search constraints. An absent field imposes no constraint."""
    category: Optional[str] = Field(None, description="Restrict to one category")
    min_members: Optional[int] = Field(None, ge=0, description="Minimum member count")
    max_members: Optional[int] = Field(None, ge=0, description="Maximum member count")
    created_after: Optional[int] = Field(None, description="Created strictly after this epoch")
    created_before: Optional[int] = Field(None, description="Created strictly before this epoch")
    is_public: Optional[bool] = Field(None, description="Public/private status")

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class RegistryQuery(BaseModel):
    """A composed request for exactly one query mode."""
    mode: QueryMode
    page: int = 0
    page_size: int = 12
    query: Optional[str] = None
    category: Optional[str] = None
    filters: Optional[SearchFilters] = None
    sort: Optional[SortOption] = None
