"""In-memory time series store with a small query language and a Flask HTTP API."""

__version__ = "0.1.0"
__all__ = ["api", "cli", "engine", "parser", "storage"]