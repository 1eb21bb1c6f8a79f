"""
Store module for the NMOS ledger.

This module provides the authoritative in-memory collections of records:
- RegistryStore: per-kind put/get/get_all/delete with one lock per kind

Invariants:
    - The store is the only component that mutates a collection
    - Every admitted record is validated and freshly versioned
"""

from .ram_store import KindCollection, RegistryStore

__all__ = [
    "RegistryStore",
    "KindCollection",
]
