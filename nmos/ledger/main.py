"""
NMOS Ledger - Main entry point.

This module starts the ledger Query API over an empty in-memory
registry store.

Usage:
    python -m nmos.ledger.main [--host HOST] [--port PORT]

Configuration is via environment variables.
See config.py and api/config.py for all available settings.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import json_log_formatter
import uvicorn

from .api import Settings, create_app
from .config import LedgerConfig, ObservabilityConfig
from .query import QueryEngine
from .store import RegistryStore

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="NMOS ledger query service")
    parser.add_argument("--host", help="Bind host (overrides LEDGER_QUERY_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (overrides LEDGER_QUERY_PORT)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.observability)
    config.log_config()

    overrides = {k: v for k, v in (("host", args.host), ("port", args.port)) if v is not None}
    settings = Settings(**overrides)

    store = RegistryStore(engine=QueryEngine(config.query))
    app = create_app(store, settings)

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
