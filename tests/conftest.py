"""Shared pytest fixtures and test configuration.

This module provides common fixtures and utilities for all tests.
"""

from __future__ import annotations

import copy
import os
import sys
import tempfile

import pytest

# Ensure repo root is on sys.path
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


def configure_test_env() -> None:
    """Configure environment variables for testing.

    Data directory strategy:
    - If PAPER_SEARCH_DATA_DIR is already set, use it (user override)
    - Otherwise, default to an isolated temporary directory to avoid touching real data/
    """
    if "PAPER_SEARCH_DATA_DIR" not in os.environ:
        os.environ["PAPER_SEARCH_DATA_DIR"] = tempfile.mkdtemp(prefix="paper_search_test_")

    os.environ["PAPER_SEARCH_ENABLE_SWAGGER"] = "0"
    os.environ["PAPER_SEARCH_SECRET_KEY"] = "test-secret-key"
    os.environ["PAPER_SEARCH_SENTRY_ENABLED"] = "0"
    os.environ.setdefault("PAPER_SEARCH_LOG_LEVEL", "ERROR")


# Configure test environment on import
configure_test_env()


# Sample corpus in the loose shape the hosted database exports.
SAMPLE_PAPERS = {
    "Research": {
        "p1": {
            "title": "Diabetes Management Guidelines",
            "abstract": (
                "Glycemic control in type 2 diabetes patients. "
                "Insulin therapy reduces long term complications in adult patients with poor control."
            ),
            "keywords": ["diabetes", "insulin"],
            "indexed": {"a": "endocrine"},
            "publicationType": "Research",
            "publicationScope": "Local",
            "researchField": "Endocrinology",
            "uploadType": "Public Only",
            "authorIDs": ["u1"],
            "publicationdate": "2023-05-10",
            "status": "Published",
            "pdfUrl": "https://files.example/p1.pdf",
        },
        "p2": {
            "title": "Cardiac Arrest Protocols",
            "abstract": "Resuscitation outcomes after in-hospital cardiac arrest. Early defibrillation improves survival.",
            "keywords": ["cardiology"],
            "publicationType": "Case Report",
            "publicationScope": "International",
            "requiredFields": {"researchField": "Cardiology"},
            "uploadType": "Private",
            "authorIDs": ["u2"],
            "authors": ["Maria Santos"],
            "publicationdate": "2021-11-02",
            "status": "draft",
        },
    },
    "Thesis": {
        "p3": {
            "title": "Pediatric Asthma Outcomes",
            "abstract": "Inhaled corticosteroids in children with persistent asthma.",
            "keywords": ["asthma", "pediatrics"],
            "publicationType": "Thesis",
            "publicationScope": "Local",
            "researchField": "Pediatrics",
            "uploadType": "Eyes Only",
            "authorIDs": ["u1", "u9"],
            "publicationdate": "not a date",
            "status": "Published",
        },
    },
}

SAMPLE_USERS = {
    "u1": {"firstName": "Ana", "middleInitial": "reyes", "lastName": "Cruz", "role": "Resident"},
    "u2": {"firstName": "John", "lastName": "Smith", "suffix": "MD", "role": "Doctor"},
}

SAMPLE_RATINGS = {
    "p1": {"u2": 5, "u3": 3},
    "p2": {"u1": 4},
}


@pytest.fixture
def sample_tree() -> dict:
    return copy.deepcopy(SAMPLE_PAPERS)


@pytest.fixture
def sample_snapshot(sample_tree):
    """Corpus snapshot built from the sample export."""
    from backend.schemas.search import CorpusSnapshot

    return CorpusSnapshot.from_store(sample_tree, copy.deepcopy(SAMPLE_USERS), copy.deepcopy(SAMPLE_RATINGS))


@pytest.fixture
def two_record_snapshot():
    """Just the diabetes and cardiac papers, titles only."""
    from backend.schemas.search import CorpusSnapshot

    tree = {
        "Research": {
            "A": {"title": "Diabetes Management Guidelines", "uploadType": "Public"},
            "B": {"title": "Cardiac Arrest Protocols", "uploadType": "Public"},
        }
    }
    return CorpusSnapshot.from_store(tree, {}, {})


@pytest.fixture
def isolated_store(tmp_path, monkeypatch):
    """Point the paper store at a fresh per-test directory."""
    from paperstore import db

    monkeypatch.setattr(db.settings, "data_dir", tmp_path)
    return tmp_path


@pytest.fixture
def seeded_store(isolated_store):
    """Write the sample export into the isolated store and reset the process-wide coordinator."""
    from backend.services.data_service import reset_coordinator
    from paperstore.repositories import PaperRepository, RatingRepository, UserRepository

    for category, papers in copy.deepcopy(SAMPLE_PAPERS).items():
        PaperRepository.put_many(category, papers)
    for uid, profile in SAMPLE_USERS.items():
        UserRepository.put(uid, dict(profile))
    for pid, votes in SAMPLE_RATINGS.items():
        for uid, value in votes.items():
            RatingRepository.set_rating(pid, uid, value)

    reset_coordinator()
    yield isolated_store
    reset_coordinator()


@pytest.fixture(scope="session")
def app():
    """Create Flask application for testing.

    This fixture is session-scoped to avoid recreating the app for each test.
    """
    from backend import create_app

    application = create_app()
    application.testing = True
    return application


@pytest.fixture
def client(app):
    """Create Flask test client.

    This fixture is function-scoped to ensure clean state for each test.
    """
    return app.test_client()


@pytest.fixture
def seeded_client(app, seeded_store):
    """Test client backed by a store holding the sample corpus."""
    return app.test_client()
