"""
Error types for the NMOS ledger.

This module defines all exception types raised by the registry core:
- LedgerError: Base exception
- ValidationError: A record failed admission to the store
- InvalidIdentifierError: An identifier is not a valid UUID
- NotFoundError: A valid identifier does not resolve to a record
- NotImplementedCapabilityError: A capability that is intentionally absent

Invariants:
    - All errors inherit from LedgerError
    - Errors carry structured details (kind, identifier, field)
    - The core never maps errors to transport status codes
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "LEDGER_ERROR"
        self.details = details or {}


class ValidationError(LedgerError):
    """Record validation failed.

    Raised when:
    - Identifier or version is malformed
    - Label is missing or empty
    - A kind-specific field is missing, mistyped or not a known enum value
    """

    def __init__(
        self,
        field_name: str,
        reason: str,
        kind: Optional[str] = None,
    ) -> None:
        prefix = f"Invalid {kind}: " if kind else ""
        super().__init__(
            f"{prefix}field '{field_name}' {reason}",
            code="VALIDATION_ERROR",
            details={"field": field_name, "reason": reason, "kind": kind},
        )
        self.field_name = field_name
        self.reason = reason
        self.kind = kind


class InvalidIdentifierError(LedgerError):
    """A supplied identifier is not a syntactically valid UUID."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            "Identifier must be a valid UUID.",
            code="INVALID_IDENTIFIER",
            details={"value": value},
        )
        self.value = value


class NotFoundError(LedgerError):
    """Resource not found.

    Raised when a syntactically valid identifier does not resolve to any
    record of the requested kind.
    """

    def __init__(
        self,
        kind: str,
        resource_id: str,
    ) -> None:
        article = "An" if kind[:1].lower() in "aeiou" else "A"
        super().__init__(
            f"{article} {kind} with identifier '{resource_id}' could not be found.",
            code="NOT_FOUND",
            details={
                "kind": kind,
                "resource_id": resource_id,
            },
        )
        self.kind = kind
        self.resource_id = resource_id


class NotImplementedCapabilityError(LedgerError):
    """A structurally valid request targets an unimplemented capability."""

    def __init__(
        self,
        capability: str,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message or f"The '{capability}' capability is not implemented.",
            code="NOT_IMPLEMENTED",
            details={"capability": capability},
        )
        self.capability = capability
