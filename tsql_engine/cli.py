"""Command-line entry point that starts the query server."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from .api import serve
from .engine import QueryEngine
from .storage import TimeSeriesStore

__all__ = ["build_engine", "main"]

log = logging.getLogger(__name__)


def build_engine() -> QueryEngine:
    """Create a query engine over a fresh, empty store."""
    return QueryEngine(TimeSeriesStore())


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the time-series query server.")
    parser.add_argument("--host", default="127.0.0.1", help="address to bind")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the server; returns 0 once it stops."""
    args = _parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    log.info("Starting TimeSeriesQL engine...")
    serve(build_engine(), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())