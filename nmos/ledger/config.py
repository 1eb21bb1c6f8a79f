"""
Configuration management for the NMOS ledger.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - default_page_size never exceeds max_page_size

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep environment variable names stable; they are part of deployments
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryConfig:
    """Query engine configuration.

    Attributes:
        default_page_size: Page size used when a query gives no valid limit
        max_page_size: Upper bound applied to a requested limit
        max_pattern_length: Longest accepted free-text filter pattern
        match_timeout: Seconds a free-text filter may spend matching one
            record before it is abandoned
    """

    default_page_size: int = 50
    max_page_size: int = 1000
    max_pattern_length: int = 256
    match_timeout: float = 0.1

    @classmethod
    def from_env(cls) -> QueryConfig:
        """Load configuration from environment variables."""
        return cls(
            default_page_size=int(os.getenv("LEDGER_DEFAULT_PAGE_SIZE", "50")),
            max_page_size=int(os.getenv("LEDGER_MAX_PAGE_SIZE", "1000")),
            max_pattern_length=int(os.getenv("LEDGER_MAX_PATTERN_LENGTH", "256")),
            match_timeout=float(os.getenv("LEDGER_MATCH_TIMEOUT", "0.1")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class LedgerConfig:
    """Complete ledger configuration.

    Attributes:
        query: Query engine configuration
        observability: Logging configuration
    """

    query: QueryConfig = field(default_factory=QueryConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            query=QueryConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.query.default_page_size < 1:
            raise ValueError("LEDGER_DEFAULT_PAGE_SIZE must be at least 1")
        if self.query.max_page_size < self.query.default_page_size:
            raise ValueError(
                "LEDGER_MAX_PAGE_SIZE must not be smaller than LEDGER_DEFAULT_PAGE_SIZE"
            )
        if self.query.max_pattern_length < 1:
            raise ValueError("LEDGER_MAX_PATTERN_LENGTH must be at least 1")
        if self.query.match_timeout <= 0:
            raise ValueError("LEDGER_MATCH_TIMEOUT must be positive")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

    def log_config(self) -> None:
        logger.info(
            "Ledger configuration loaded",
            extra={
                "default_page_size": self.query.default_page_size,
                "max_page_size": self.query.max_page_size,
                "max_pattern_length": self.query.max_pattern_length,
                "match_timeout": self.query.match_timeout,
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        )
