"""
Query module for the NMOS ledger.

This module provides filtering and pagination of record collections:
- QueryEngine: predicate matching and page arithmetic
- Page: a page of results with total/page_of/pages/size metadata
- Bounded compilation of free-text filter patterns

Invariants:
    - Filtering preserves collection order
    - Unknown or malformed filters match nothing instead of failing
"""

from .engine import RESERVED_PARAMS, Page, QueryEngine, split_params
from .patterns import MatchTimeout, compile_pattern, is_safe_pattern, search

__all__ = [
    "QueryEngine",
    "Page",
    "RESERVED_PARAMS",
    "split_params",
    "compile_pattern",
    "is_safe_pattern",
    "search",
    "MatchTimeout",
]
