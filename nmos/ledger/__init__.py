"""
NMOS Ledger - discovery registry for networked media devices.

This package keeps versioned records describing nodes, devices, sources,
flows, senders and receivers, and serves them through a filterable,
paginated query interface.

Architecture:
    ┌─────────────┐     ┌──────────────┐     ┌─────────────────┐
    │ HTTP Query  │────▶│  Registry    │────▶│ Version         │
    │ API         │     │  Store       │     │ Generator       │
    └─────────────┘     └──────┬───────┘     └─────────────────┘
                               │
                  ┌────────────┴────────────┐
                  ▼                         ▼
           ┌─────────────┐          ┌─────────────┐
           │  Resource   │          │   Query     │
           │  Validator  │          │   Engine    │
           └─────────────┘          └─────────────┘

Invariants:
    - Records are immutable snapshots once handed out
    - id is unique per kind; version strictly increases on every write
    - Queries never fail for well-formed input; bad filters match nothing
    - Subscriptions are not implemented and report so

How to change safely:
    - Add record fields through the kind's FIELDS descriptors
    - Keep the paging metadata order (total, page_of, pages, size)
"""

from ._version import __version__

__all__ = ["__version__"]
