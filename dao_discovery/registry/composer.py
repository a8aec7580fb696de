"""
Filter/sort composer.

Turns the discovery view's inputs into exactly one registry query and encodes
filters and sort options into their Candid-over-JSON shapes.

Mode precedence (highest first):
- search: trimmed search text is non-empty
- category: no search text and a category other than "All"
- listing: everything else
"""
from typing import Any, Dict, List, Optional, Union

from dao_discovery.config.registry_settings import DISCOVERY_MAX_PAGE_SIZE, DISCOVERY_PAGE_SIZE
from dao_discovery.data_models.discovery_schemas import (
    ALL_CATEGORIES,
    QueryMode,
    RegistryQuery,
    SearchFilters,
    SortOption,
)
from dao_discovery.registry.exceptions import InvalidQueryError


def is_all_categories(category: Optional[str]) -> bool:
    return category is None or category.strip() == "" or category == ALL_CATEGORIES


def select_mode(search_text: Optional[str], category: Optional[str]) -> QueryMode:
    """Pick the query mode for a (search text, category) pair."""
    if search_text and search_text.strip():
        return QueryMode.SEARCH
    if not is_all_categories(category):
        return QueryMode.CATEGORY
    return QueryMode.LISTING


def validate_paging(page: int, page_size: int, max_page_size: int = DISCOVERY_MAX_PAGE_SIZE) -> None:
    """
    Reject paging parameters the registry cannot answer consistently.

    Raises:
        InvalidQueryError: If page is negative or page_size is out of range
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 0:
        raise InvalidQueryError(f"page must be a non-negative integer, got {page!r}")
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= max_page_size:
        raise InvalidQueryError(f"page_size must be between 1 and {max_page_size}, got {page_size!r}")


def coerce_sort(sort: Union[SortOption, str, None]) -> Optional[SortOption]:
    if sort is None or isinstance(sort, SortOption):
        return sort
    try:
        return SortOption(sort)
    except ValueError:
        raise InvalidQueryError(f"Unknown sort option: {sort!r}")


def merge_category(filters: Optional[SearchFilters], category: Optional[str]) -> Optional[SearchFilters]:
    """Fold the selected category into the search filters unless it is 'All'."""
    if is_all_categories(category):
        return filters
    base = filters or SearchFilters()
    return base.model_copy(update={"category": category})


def compose_query(
    search_text: Optional[str] = "",
    category: Optional[str] = ALL_CATEGORIES,
    filters: Optional[SearchFilters] = None,
    sort: Union[SortOption, str, None] = None,
    page: int = 0,
    page_size: int = DISCOVERY_PAGE_SIZE,
) -> RegistryQuery:
    """
    Compose the registry request for the current view inputs.

    Category mode carries only the category and paging; listing mode carries
    only paging. Filters and sort are dropped there because the registry's
    category and listing endpoints do not accept them.
    """
    validate_paging(page, page_size)
    mode = select_mode(search_text, category)

    if mode is QueryMode.SEARCH:
        return RegistryQuery(
            mode=mode,
            page=page,
            page_size=page_size,
            query=search_text.strip(),
            filters=merge_category(filters, category),
            sort=coerce_sort(sort),
        )
    if mode is QueryMode.CATEGORY:
        return RegistryQuery(mode=mode, page=page, page_size=page_size, category=category)
    return RegistryQuery(mode=mode, page=page, page_size=page_size)


# ==================
# Wire encoding
# ==================

def _opt(value: Any) -> List[Any]:
    return [] if value is None else [value]


def encode_filters(filters: Optional[SearchFilters]) -> List[Dict[str, List[Any]]]:
    """
    Encode filters as ``opt SearchFilters``.

    Only ``None`` is absent; ``0`` and ``False`` are real constraints.
    """
    if filters is None:
        return []
    return [{
        "category": _opt(filters.category),
        "min_members": _opt(filters.min_members),
        "max_members": _opt(filters.max_members),
        "created_after": _opt(filters.created_after),
        "created_before": _opt(filters.created_before),
        "is_public": _opt(filters.is_public),
    }]


def encode_sort(sort: Union[SortOption, str, None]) -> List[Dict[str, None]]:
    """Encode a sort option as ``opt SortBy`` (a variant with a null payload)."""
    option = coerce_sort(sort)
    if option is None:
        return []
    return [{option.value: None}]


def encode_principal(text: str) -> Dict[str, str]:
    return {"__principal__": text}
