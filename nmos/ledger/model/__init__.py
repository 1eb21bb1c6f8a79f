"""
Resource model for the NMOS ledger.

This module provides the record types and the rules applied to them:
- Record types (Node, Device, Source, Flow, Sender, Receiver)
- Field descriptors driving validation and query matching
- Version tokens and their generator

Invariants:
    - id is immutable once assigned and unique within a kind
    - version strictly increases on every create and update
    - Records are immutable snapshots

How to change safely:
    - Add fields through the kind's FIELDS descriptor tuple
    - Never reuse or reorder enum URNs
"""

from .types import (
    RESOURCE_TYPES,
    Device,
    DeviceType,
    FieldDef,
    FieldKind,
    Flow,
    FrozenMap,
    Format,
    Node,
    Receiver,
    Resource,
    ResourceKind,
    Sender,
    Source,
    Transport,
)
from .validate import (
    check_record,
    generate_id,
    generate_label,
    generate_version,
    is_valid,
    valid_id,
    validate_or_raise,
)
from .versions import Version, VersionGenerator, get_version_generator, valid_version

__all__ = [
    # Types
    "Resource",
    "ResourceKind",
    "RESOURCE_TYPES",
    "Node",
    "Device",
    "Source",
    "Flow",
    "Sender",
    "Receiver",
    "Format",
    "Transport",
    "DeviceType",
    "FieldDef",
    "FieldKind",
    "FrozenMap",
    # Validation
    "check_record",
    "is_valid",
    "validate_or_raise",
    "valid_id",
    "generate_id",
    "generate_label",
    "generate_version",
    # Versions
    "Version",
    "VersionGenerator",
    "get_version_generator",
    "valid_version",
]
