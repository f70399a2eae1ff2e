"""Test package for the paper search service.

- **unit/**: functions and classes in isolation (tokenizer, similarity, names,
  schemas, vocabulary, suggestions, ranking, phrases, snapshot cache and
  coordinator, store, config, tools)
- **integration/**: the Flask app through its test client, backed by a
  temporary store seeded with a small sample corpus

Running tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/

Every test runs against a throwaway data directory; nothing touches data/.
"""
