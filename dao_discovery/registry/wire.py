"""
Wire normalizer for registry records.

Converts raw registry values (Candid-over-JSON: ``opt`` as ``[]``/``[v]``,
``nat`` as JSON integers or decimal strings, principals as
``{"__principal__": text}``) into plain view-models.

Normalization never raises. A missing, malformed or oddly shaped field is
replaced by its default (``""``, ``0``, ``False`` or ``None``) and reported to
the optional ``on_fallback`` hook and the debug log. Normalizing an already
normalized record returns an equal record.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from dao_discovery.data_models.discovery_schemas import (
    CategoryCount,
    DAOMetadata,
    DAOStats,
    RegistryHealth,
    RegistryStats,
)
from dao_discovery.utils.logger import logger

FallbackHook = Callable[[str, Any], None]

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_MISSING = object()


# ==================
# Optional-wrapped values
# ==================

@dataclass(frozen=True)
class Present:
    value: Any


@dataclass(frozen=True)
class Absent:
    pass


ABSENT = Absent()
Opt = Union[Present, Absent]


def unwrap_opt(raw: Any) -> Opt:
    """
    Read a Candid ``opt`` container.

    ``[]`` and ``None`` are absent, ``[v]`` is present. A bare scalar counts
    as present so that plain optionals pass through unchanged. Containers
    with more than one element are not valid ``opt`` values and are absent.
    """
    if raw is None or raw is _MISSING:
        return ABSENT
    if isinstance(raw, (list, tuple)):
        if len(raw) == 1:
            return Present(raw[0])
        return ABSENT
    return Present(raw)


def to_wide_int(raw: Any) -> Optional[int]:
    """Convert a wire integer to ``int``, or ``None`` when it is not one."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if math.isfinite(raw) and raw.is_integer():
            return int(raw)
        return None
    if isinstance(raw, str):
        text = raw.strip().replace("_", "")
        if not _INT_PATTERN.match(text):
            return None
        try:
            return int(text)
        except ValueError:
            # Beyond the interpreter's int/str conversion digit limit
            return None
    if isinstance(raw, Mapping):
        for key in ("__nat__", "__int__", "__bigint__"):
            if key in raw:
                return to_wide_int(raw[key])
    return None


def to_principal_text(raw: Any) -> Optional[str]:
    """Render a principal-like identity to its canonical text form."""
    if isinstance(raw, str):
        return raw.strip()
    if isinstance(raw, Mapping):
        for key in ("__principal__", "text"):
            if isinstance(raw.get(key), str):
                return raw[key].strip()
        return None
    to_text = getattr(raw, "to_text", None) or getattr(raw, "toText", None)
    if callable(to_text):
        try:
            text = to_text()
        except Exception as e:
            logger.debug(f"Principal rendering failed: {e}")
            return None
        return text.strip() if isinstance(text, str) else None
    return None


def _describe(raw: Any) -> str:
    """Short repr for logs; ints past the str conversion limit cannot be rendered."""
    try:
        text = repr(raw)
    except ValueError:
        return f"<{type(raw).__name__} too large to render>"
    return text if len(text) <= 200 else text[:200] + "..."


# ==================
# Normalizer
# ==================

class WireNormalizer:
    """
    Lenient converter from raw registry records to view-models.

    Args:
        on_fallback: Called as ``on_fallback(field, raw_value)`` whenever a
            field is replaced by its default. Lets callers observe malformed
            upstream data without breaking rendering.
    """

    def __init__(self, on_fallback: Optional[FallbackHook] = None):
        self.on_fallback = on_fallback

    def _fallback(self, field: str, raw: Any) -> None:
        shown = None if raw is _MISSING else raw
        logger.debug(f"[WireNormalizer] Defaulted field '{field}' (raw={_describe(shown)})")
        if self.on_fallback is not None:
            try:
                self.on_fallback(field, shown)
            except Exception as e:
                logger.warning(f"[WireNormalizer] on_fallback hook failed for '{field}': {e}")

    @staticmethod
    def _as_mapping(raw: Any) -> Optional[Mapping]:
        if isinstance(raw, BaseModel):
            return raw.model_dump()
        if isinstance(raw, Mapping):
            return raw
        return None

    # Field readers

    def _text(self, record: Mapping, field: str) -> str:
        raw = record.get(field, _MISSING)
        if isinstance(raw, str):
            return raw
        self._fallback(field, raw)
        return ""

    def _nat(self, record: Mapping, field: str, prefix: str = "") -> int:
        raw = record.get(field, _MISSING)
        value = to_wide_int(raw)
        if value is None or value < 0:
            self._fallback(prefix + field, raw)
            return 0
        return value

    def _float(self, record: Mapping, field: str) -> float:
        raw = record.get(field, _MISSING)
        value = math.nan
        if isinstance(raw, int) and not isinstance(raw, bool):
            try:
                value = float(raw)
            except OverflowError:
                value = math.nan
        elif isinstance(raw, float):
            value = raw
        elif isinstance(raw, str):
            try:
                value = float(raw.strip())
            except ValueError:
                value = math.nan
        if math.isfinite(value):
            return value
        self._fallback(field, raw)
        return 0.0

    def _bool(self, record: Mapping, field: str) -> bool:
        raw = record.get(field, _MISSING)
        if isinstance(raw, bool):
            return raw
        self._fallback(field, raw)
        return False

    def _principal(self, record: Mapping, field: str) -> str:
        raw = record.get(field, _MISSING)
        text = to_principal_text(raw)
        if text is None:
            self._fallback(field, raw)
            return ""
        return text

    def _opt_text(self, record: Mapping, field: str) -> Optional[str]:
        raw = record.get(field, _MISSING)
        wrapped = unwrap_opt(raw)
        if isinstance(wrapped, Absent):
            if isinstance(raw, (list, tuple)) and len(raw) > 1:
                self._fallback(field, raw)
            return None
        if isinstance(wrapped.value, str):
            return wrapped.value
        self._fallback(field, raw)
        return None

    # Records

    def normalize_dao(self, raw: Any) -> DAOMetadata:
        """Normalize one raw registry record into ``DAOMetadata``."""
        if isinstance(raw, DAOMetadata):
            return raw
        record = self._as_mapping(raw)
        if record is None:
            self._fallback("record", raw)
            return DAOMetadata()

        return DAOMetadata(
            dao_id=self._text(record, "dao_id"),
            name=self._text(record, "name"),
            description=self._text(record, "description"),
            category=self._text(record, "category"),
            creator_principal=self._principal(record, "creator_principal"),
            creation_date=self._nat(record, "creation_date"),
            member_count=self._nat(record, "member_count"),
            active_proposals=self._nat(record, "active_proposals"),
            total_value_locked=self._nat(record, "total_value_locked"),
            is_public=self._bool(record, "is_public"),
            dao_canister_id=self._principal(record, "dao_canister_id"),
            website=self._opt_text(record, "website"),
            logo_url=self._opt_text(record, "logo_url"),
            logo_asset_id=self._opt_text(record, "logo_asset_id"),
            logo_type=self._opt_text(record, "logo_type"),
            token_symbol=self._opt_text(record, "token_symbol"),
            last_activity=self._nat(record, "last_activity"),
        )

    def normalize_daos(self, raw_items: Any) -> List[DAOMetadata]:
        """Normalize a list of raw records; a non-list reply yields ``[]``."""
        if not isinstance(raw_items, (list, tuple)):
            self._fallback("items", raw_items)
            return []
        return [self.normalize_dao(item) for item in raw_items]

    def normalize_dao_stats(self, raw: Any) -> Optional[DAOStats]:
        """
        Normalize a ``getDAOStats`` reply.

        The reply is ``opt DAOStats``; an absent value means "not found" and
        yields ``None``.
        """
        if isinstance(raw, DAOStats):
            return raw
        wrapped = unwrap_opt(raw)
        if isinstance(wrapped, Absent):
            return None
        record = self._as_mapping(wrapped.value)
        if record is None:
            self._fallback("stats", raw)
            return None

        return DAOStats(
            dao_id=self._text(record, "dao_id"),
            member_count=self._nat(record, "member_count"),
            total_proposals=self._nat(record, "total_proposals"),
            active_proposals=self._nat(record, "active_proposals"),
            total_staked=self._nat(record, "total_staked"),
            treasury_balance=self._nat(record, "treasury_balance"),
            governance_participation=self._float(record, "governance_participation"),
            last_updated=self._nat(record, "last_updated"),
        )

    def _category_counts(self, raw: Any) -> List[CategoryCount]:
        if not isinstance(raw, (list, tuple)):
            self._fallback("categories", raw)
            return []

        counts = []
        for entry in raw:
            if isinstance(entry, CategoryCount):
                counts.append(entry)
                continue
            if isinstance(entry, (list, tuple)) and len(entry) == 2:
                entry = {"category": entry[0], "count": entry[1]}
            record = self._as_mapping(entry)
            if record is None or not isinstance(record.get("category"), str):
                self._fallback("categories[]", entry)
                continue
            counts.append(CategoryCount(
                category=record["category"],
                count=self._nat(record, "count", prefix="categories[]."),
            ))
        return counts

    def normalize_registry_stats(self, raw: Any) -> RegistryStats:
        if isinstance(raw, RegistryStats):
            return raw
        record = self._as_mapping(raw)
        if record is None:
            self._fallback("registry_stats", raw)
            return RegistryStats()

        return RegistryStats(
            total_daos=self._nat(record, "total_daos"),
            public_daos=self._nat(record, "public_daos"),
            total_members=self._nat(record, "total_members"),
            total_tvl=self._nat(record, "total_tvl"),
            categories=self._category_counts(record.get("categories", _MISSING)),
        )

    def normalize_categories(self, raw: Any) -> List[str]:
        """Normalize the supported-category list; non-text entries are dropped."""
        if not isinstance(raw, (list, tuple)):
            self._fallback("categories", raw)
            return []
        categories = []
        for entry in raw:
            if isinstance(entry, str):
                categories.append(entry)
            else:
                self._fallback("categories[]", entry)
        return categories

    def normalize_health(self, raw: Any) -> RegistryHealth:
        record = self._as_mapping(raw)
        if record is None:
            self._fallback("health", raw)
            return RegistryHealth()

        status = record.get("status")
        if not isinstance(status, str):
            self._fallback("status", status)
            status = "unknown"
        return RegistryHealth(
            status=status,
            timestamp=self._nat(record, "timestamp"),
            total_daos=self._nat(record, "total_daos"),
        )


default_normalizer = WireNormalizer()


def normalize_dao(raw: Any) -> DAOMetadata:
    """Normalize one raw record with the default (hook-less) normalizer."""
    return default_normalizer.normalize_dao(raw)


def normalize_daos(raw_items: Iterable[Any]) -> List[DAOMetadata]:
    return default_normalizer.normalize_daos(raw_items)
