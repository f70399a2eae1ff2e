"""Blueprint modules for app routes."""

from . import api_search

__all__ = ["api_search"]
