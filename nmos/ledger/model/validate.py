"""
Record validation for the NMOS ledger.

This module provides:
- Normalising generators for the shared fields (id, version, label)
- Field-level checks driven by each kind's FieldDef descriptors
- Record validation with structured errors

Invariants:
    - Validation is pure and deterministic
    - Generators never fail; they fall back to a generated value
    - Errors name the offending field and the reason
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, List, Tuple

from ..errors import ValidationError
from .versions import get_version_generator, valid_version

if TYPE_CHECKING:
    from .types import Resource

DEFAULT_LABEL = "unlabelled"


def valid_id(value: Any) -> bool:
    """Whether value is a syntactically valid UUID string."""
    if not isinstance(value, str):
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    # uuid.UUID also accepts braces, urn: prefixes and missing hyphens
    return str(parsed) == value.lower()


def valid_label(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def generate_id(candidate: Any = None) -> str:
    """Return candidate if it is a valid UUID, otherwise a new random one."""
    if valid_id(candidate):
        return candidate
    return str(uuid.uuid4())


def generate_version(candidate: Any = None) -> str:
    """Return candidate if it is a well-formed version, otherwise a fresh one."""
    if valid_version(candidate):
        return candidate
    return get_version_generator().next()


def generate_label(candidate: Any = None) -> str:
    """Return candidate if it is a non-empty string, otherwise a placeholder."""
    if valid_label(candidate):
        return candidate
    return DEFAULT_LABEL


def check_record(record: Resource) -> List[Tuple[str, str]]:
    """Check every declared field of a record.

    Args:
        record: Record to check

    Returns:
        List of (field_name, reason) pairs, empty if the record is valid
    """
    errors: List[Tuple[str, str]] = []
    for field_def in record.FIELDS:
        reason = field_def.check(getattr(record, field_def.name, None))
        if reason:
            errors.append((field_def.name, reason))
    return errors


def is_valid(record: Resource) -> bool:
    return not check_record(record)


def validate_or_raise(record: Resource) -> None:
    """Validate a record and raise on the first invalid field.

    Raises:
        ValidationError: If any field is invalid
    """
    errors = check_record(record)
    if errors:
        field_name, reason = errors[0]
        raise ValidationError(field_name, reason, kind=record.KIND.value)

