"""
Repository Layer - High-level store operations.

Each repository corresponds to one collection of the document store (papers,
users, ratings). The search core never writes: it only consumes the snapshots
these repositories read. Writes exist for seeding, tests and the upload tooling.

Usage examples:
    from paperstore.repositories import PaperRepository, RatingRepository

    tree = PaperRepository.get_tree()
    ratings = RatingRepository.get_all()
"""

from typing import Dict, Iterator, Tuple

from loguru import logger

from paperstore.db import get_papers_db, get_ratings_db, get_users_db, paper_key, parse_paper_key

# -----------------------------------------------------------------------------
# Paper Repository
# -----------------------------------------------------------------------------


class PaperRepository:
    """Repository for paper records."""

    @staticmethod
    def iter_all() -> Iterator[Tuple[str, str, dict]]:
        """Yield (category, pid, raw paper dict) in insertion order."""
        with get_papers_db() as pdb:
            for key, value in pdb.items():
                category, pid = parse_paper_key(key)
                yield category, pid, value

    @staticmethod
    def get_tree() -> Dict[str, Dict[str, dict]]:
        """Return the papers grouped by category: {category: {pid: paper}}."""
        tree: Dict[str, Dict[str, dict]] = {}
        for category, pid, paper in PaperRepository.iter_all():
            tree.setdefault(category, {})[pid] = paper
        return tree

    @staticmethod
    def get(category: str, pid: str):
        with get_papers_db() as pdb:
            return pdb.get(paper_key(category, pid))

    @staticmethod
    def put(category: str, pid: str, paper: dict) -> None:
        with get_papers_db(flag="c") as pdb:
            pdb[paper_key(category, pid)] = paper
        logger.trace(f"stored paper {category}/{pid}")

    @staticmethod
    def put_many(category: str, papers: Dict[str, dict]) -> None:
        if not papers:
            return
        with get_papers_db(flag="c") as pdb:
            pdb.set_many({paper_key(category, pid): paper for pid, paper in papers.items()})
        logger.trace(f"stored {len(papers)} papers under {category}")

    @staticmethod
    def count() -> int:
        with get_papers_db() as pdb:
            return len(pdb)


# -----------------------------------------------------------------------------
# User Repository
# -----------------------------------------------------------------------------


class UserRepository:
    """Repository for the user directory."""

    @staticmethod
    def get_all() -> Dict[str, dict]:
        with get_users_db() as udb:
            return {uid: profile for uid, profile in udb.items() if isinstance(profile, dict)}

    @staticmethod
    def get(uid: str):
        with get_users_db() as udb:
            return udb.get(uid)

    @staticmethod
    def put(uid: str, profile: dict) -> None:
        with get_users_db(flag="c") as udb:
            udb[uid] = profile


# -----------------------------------------------------------------------------
# Rating Repository
# -----------------------------------------------------------------------------


class RatingRepository:
    """Repository for paper ratings (paper id -> {rater uid: value})."""

    @staticmethod
    def get_all() -> Dict[str, dict]:
        with get_ratings_db() as rdb:
            return {pid: votes for pid, votes in rdb.items() if isinstance(votes, dict)}

    @staticmethod
    def get_for_paper(pid: str) -> dict:
        with get_ratings_db() as rdb:
            return rdb.get(pid) or {}

    @staticmethod
    def set_rating(pid: str, uid: str, value: float) -> None:
        """Set one rater's rating atomically (read-modify-write in a transaction)."""
        with get_ratings_db(flag="c") as rdb:
            with rdb.transaction():
                votes = dict(rdb.get(pid) or {})
                votes[uid] = value
                rdb[pid] = votes
        logger.trace(f"rating {pid} by {uid} = {value}")
