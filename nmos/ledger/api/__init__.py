"""
API module for the NMOS ledger.

This module provides the read-only HTTP Query API:
- FastAPI app factory with CORS and error mapping
- Discovery routes (/, /x-nmos/, /x-nmos/query/)
- Resource routes with paging headers

Invariants:
    - The API only translates; all rules live in the store and engine
    - Subscriptions answer 501
"""

from .app import create_app
from .config import Settings

__all__ = ["create_app", "Settings"]
