"""
Query engine for the NMOS ledger.

Turns a raw mapping of query parameters into a filtered, paginated
slice of a collection:

1. page and limit are removed from the filter set
2. every other parameter becomes a predicate on the field of that name
3. matches keep the collection's insertion order
4. the matches are sliced into the requested page

Matching rules:
    - Free-text fields (label, description): unanchored regular
      expression search, case-sensitive
    - Identifier and other string fields: exact equality
    - Enum fields: exact equality with the URN or with its last segment
      ("audio" matches "urn:x-nmos:format:audio")
    - Identifier lists (parents, senders, receivers): membership
    - Object fields and unknown names: never match
    - A parameter given several values yields one predicate per value
    - All predicates must hold

Invariants:
    - total counts every match, independent of paging
    - pages == max(1, ceil(total / page_size))
    - 1 <= page_of <= pages
    - size == len(records) <= page_size
    - The engine never raises for a query; bad filters match nothing
    - A free-text filter that exceeds its match timeout stops matching
      for the rest of the query
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Type

from ..config import QueryConfig
from ..model.types import FieldKind, Resource
from .patterns import MatchTimeout, compile_pattern, search

logger = logging.getLogger(__name__)

PAGE_PARAM = "page"
LIMIT_PARAM = "limit"
RESERVED_PARAMS = (PAGE_PARAM, LIMIT_PARAM)

_EXACT_KINDS = (
    FieldKind.UUID,
    FieldKind.VERSION,
    FieldKind.LABEL,
    FieldKind.TEXT,
    FieldKind.STRING,
)

Predicate = Callable[[Resource], bool]


@dataclass(frozen=True)
class Page:
    """One page of a query result.

    Attributes:
        records: Records in this page, in collection order
        total: Number of records matching the query before paging
        page_of: 1-based number of the page returned
        pages: Total number of pages
        size: Number of records in this page
    """

    records: Tuple[Resource, ...]
    total: int
    page_of: int
    pages: int
    size: int


def _values(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _first_int(value: Any) -> Optional[int]:
    values = _values(value)
    if not values:
        return None
    first = values[0]
    # ASCII digits only: no sign, padding or underscores
    if first.isascii() and first.isdigit():
        return int(first)
    return None


def split_params(
    params: Optional[Mapping[str, Any]],
) -> Tuple[Optional[int], Optional[int], List[Tuple[str, str]]]:
    """Separate paging parameters from filters.

    Args:
        params: Parameter name to a value or a list of values

    Returns:
        Tuple of (page, limit, filters); page and limit are None when
        absent or not plain decimal numbers, filters is a list of (name, value) pairs
    """
    page = limit = None
    filters: List[Tuple[str, str]] = []
    for name, value in (params or {}).items():
        if name == PAGE_PARAM:
            page = _first_int(value)
        elif name == LIMIT_PARAM:
            limit = _first_int(value)
        else:
            filters.extend((name, v) for v in _values(value))
    return page, limit, filters


def _never(record: Resource) -> bool:
    return False


def _enum_matches(actual: Any, value: str) -> bool:
    # "audio" is shorthand for "urn:x-nmos:format:audio"
    if not isinstance(actual, str):
        return False
    return actual == value or actual.rsplit(":", 1)[-1] == value


class QueryEngine:
    """Filters and paginates snapshots of a collection.

    The engine holds no state beyond its configuration and can be shared
    between stores and threads.

    Example:
        >>> engine = QueryEngine()
        >>> page = engine.run(sources, Source, {"label": "Garish", "limit": "10"})
        >>> page.total, page.page_of, page.pages, page.size
        (1, 1, 1, 1)
    """

    def __init__(self, config: Optional[QueryConfig] = None) -> None:
        self.config = config or QueryConfig()

    def predicate(self, record_type: Type[Resource], name: str, value: str) -> Predicate:
        """Build the predicate for one filter on a record type."""
        field_def = record_type.field_def(name)
        if field_def is None:
            return _never

        if field_def.searchable:
            pattern = compile_pattern(value, self.config.max_pattern_length)
            if pattern is None:
                return _never

            timeout = self.config.match_timeout
            abandoned = False

            def search_field(record: Resource) -> bool:
                nonlocal abandoned
                text = getattr(record, name, None)
                if abandoned or not isinstance(text, str):
                    return False
                try:
                    return search(pattern, text, timeout)
                except MatchTimeout:
                    # One timeout disables the filter for the rest of the query
                    abandoned = True
                    logger.warning(
                        f"Free-text filter {name}={value!r} timed out after {timeout}s; "
                        f"treating it as non-matching"
                    )
                    return False

            return search_field

        if field_def.kind in _EXACT_KINDS:
            return lambda record: getattr(record, name, None) == value

        if field_def.kind == FieldKind.ENUM:
            return lambda record: _enum_matches(getattr(record, name, None), value)

        if field_def.kind == FieldKind.UUID_LIST:
            return lambda record: value in (getattr(record, name, None) or ())

        return _never

    def filter(
        self,
        records: Iterable[Resource],
        record_type: Type[Resource],
        filters: Sequence[Tuple[str, str]],
    ) -> List[Resource]:
        """Keep the records satisfying every filter, preserving order."""
        predicates = [self.predicate(record_type, name, value) for name, value in filters]
        return [r for r in records if all(p(r) for p in predicates)]

    def paginate(
        self,
        matches: Sequence[Resource],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        """Slice matches into the requested page.

        Args:
            matches: Filtered records in collection order
            page: Requested 1-based page, clamped into [1, pages]
            limit: Requested page size; defaults when missing or below 1,
                capped at max_page_size

        Returns:
            Page with its records and paging metadata
        """
        if limit is None or limit < 1:
            page_size = self.config.default_page_size
        else:
            page_size = min(limit, self.config.max_page_size)

        total = len(matches)
        pages = max(1, math.ceil(total / page_size))
        page_of = min(max(page or 1, 1), pages)

        start = (page_of - 1) * page_size
        records = tuple(matches[start:start + page_size])
        return Page(
            records=records,
            total=total,
            page_of=page_of,
            pages=pages,
            size=len(records),
        )

    def run(
        self,
        records: Sequence[Resource],
        record_type: Type[Resource],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Page:
        """Filter and paginate a collection snapshot.

        Args:
            records: Snapshot of the collection in insertion order
            record_type: Kind of the records, supplying field descriptors
            params: Raw query parameters

        Returns:
            The requested page
        """
        page, limit, filters = split_params(params)
        matches = self.filter(records, record_type, filters)
        result = self.paginate(matches, page, limit)
        logger.debug(
            f"Query on {record_type.KIND.plural} matched {result.total} of {len(records)} "
            f"(page {result.page_of}/{result.pages})"
        )
        return result
