"""
Pagination envelope.

Wraps raw listing replies into ``PaginationResult`` values whose counters are
recomputed from the reply itself, never from stale caller state, and merges
pages into the list a view is showing.
"""
from typing import Any, Callable, List, Mapping, Optional, Sequence

from dao_discovery.data_models.discovery_schemas import DAOMetadata, PaginationResult
from dao_discovery.registry.exceptions import RegistryDecodeError
from dao_discovery.registry.wire import to_wide_int
from dao_discovery.utils.logger import logger


def has_next_page(page: int, page_size: int, total_count: int) -> bool:
    return (page + 1) * page_size < total_count


def make_page(items: Sequence[DAOMetadata], total_count: int, page: int, page_size: int) -> PaginationResult:
    """Build an envelope from already-normalized items, deriving the flags."""
    items = list(items)[:page_size]
    if items:
        total_count = max(total_count, page * page_size + len(items))
    return PaginationResult[DAOMetadata](
        items=items,
        total_count=total_count,
        page=page,
        page_size=page_size,
        has_next=has_next_page(page, page_size, total_count),
        has_previous=page > 0,
    )


def empty_page(page: int = 0, page_size: int = 12) -> PaginationResult:
    return make_page([], 0, page, page_size)


def build_page(
    raw: Any,
    normalize: Callable[[Any], List[DAOMetadata]],
    page: int,
    page_size: int,
) -> PaginationResult:
    """
    Convert a raw ``PaginationResult<RawDAO>`` reply into an envelope.

    Args:
        raw: Decoded registry reply
        normalize: Converts the raw item list into view-models
        page: Page that was requested
        page_size: Page size that was requested

    Returns:
        PaginationResult with consistent ``has_next``/``has_previous``

    Raises:
        RegistryDecodeError: If the reply is not a pagination record at all
    """
    if not isinstance(raw, Mapping):
        raise RegistryDecodeError(f"Expected a pagination record, got {type(raw).__name__}")

    reply_page = to_wide_int(raw.get("page"))
    if reply_page is None or reply_page < 0:
        reply_page = page
    elif reply_page != page:
        logger.warning(f"[Pagination] Registry answered page {reply_page} for requested page {page}")

    reply_page_size = to_wide_int(raw.get("page_size"))
    if reply_page_size is None or reply_page_size < 1:
        reply_page_size = page_size

    items = normalize(raw.get("items", []))
    if len(items) > reply_page_size:
        logger.warning(
            f"[Pagination] Registry returned {len(items)} items for page_size {reply_page_size}; truncating"
        )

    total_count = to_wide_int(raw.get("total_count"))
    seen = reply_page * reply_page_size + min(len(items), reply_page_size) if items else 0
    if total_count is None or total_count < seen:
        logger.warning(f"[Pagination] total_count {raw.get('total_count')!r} inconsistent with page contents; using {seen}")
        total_count = seen

    result = make_page(items, total_count, reply_page, reply_page_size)

    for flag in ("has_next", "has_previous"):
        wire_value = raw.get(flag)
        if isinstance(wire_value, bool) and wire_value != getattr(result, flag):
            logger.warning(f"[Pagination] Registry {flag}={wire_value} disagrees with counters; using {getattr(result, flag)}")

    return result


def merge_items(
    current: Sequence[DAOMetadata],
    incoming: Sequence[DAOMetadata],
    append: bool,
    dedupe: bool = False,
) -> List[DAOMetadata]:
    """
    Merge a fetched page into the displayed list.

    ``append=False`` replaces the list. ``append=True`` concatenates in order;
    with ``dedupe`` set, incoming records whose ``dao_id`` is already shown
    are skipped.
    """
    if not append:
        return list(incoming)
    if not dedupe:
        return list(current) + list(incoming)

    seen = {dao.dao_id for dao in current}
    merged = list(current)
    for dao in incoming:
        if dao.dao_id in seen:
            continue
        seen.add(dao.dao_id)
        merged.append(dao)
    return merged


def total_pages(result: Optional[PaginationResult]) -> int:
    """Number of pages for the "Showing N of M" label."""
    if result is None or result.page_size < 1:
        return 0
    return -(-result.total_count // result.page_size)
