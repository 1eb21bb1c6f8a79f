"""
NMOS Ledger Test Suite.

This package contains:
- unit/: Unit tests for the model, store, query engine and configuration
- integration/: HTTP Query API tests over an in-memory store
"""
