"""Backend package for the paper search service.

This package provides the Flask application factory and the search core.
The main entry point is `create_app()` from `backend.app`.

Modules:
- app: Flask application factory
- blueprints/: Route handlers
- schemas/: Pydantic models for records, filters, results and requests
- services/: Vocabulary, suggestions, relevance ranking, phrases, snapshot loading
- utils/: Tokenizer, similarity, author names, caches
"""

from .app import create_app

__all__ = ["create_app"]
