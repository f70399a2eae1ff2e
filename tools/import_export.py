"""
Import a JSON export of the hosted database into the local paper store.

The export is the realtime-database tree:

    {"Papers": {category: {paperId: {...}}}, "users": {uid: {...}}, "ratings": {paperId: {uid: value}}}

Missing sections are skipped. Existing keys are overwritten.
"""

import argparse
import json
import os
import sys

# Ensure repository root is importable when executing this file directly.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from loguru import logger
from tqdm import tqdm

from paperstore.db import get_papers_db, get_ratings_db, get_users_db, paper_key

PAPERS_KEYS = ("Papers", "papers")
USERS_KEYS = ("users", "Users")
RATINGS_KEYS = ("ratings", "Ratings")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import a database JSON export into the paper store")
    parser.add_argument("export", help="path to the JSON export file")
    parser.add_argument("--only", choices=["papers", "users", "ratings"], action="append", help="import only this section")
    parser.add_argument("--dry-run", action="store_true", default=False, help="parse and count without writing")
    return parser


def _section(tree: dict, keys: tuple) -> dict:
    for key in keys:
        value = tree.get(key)
        if isinstance(value, dict):
            return value
    return {}


def _existing(db, keys) -> int:
    """How many of ``keys`` the collection already holds."""
    return len(db.get_many(keys))


def import_papers(papers: dict, dry_run: bool = False) -> tuple[int, int]:
    """Write papers keyed "category::pid"; returns (imported, replaced)."""
    rows = {}
    for category, group in papers.items():
        if not isinstance(group, dict):
            logger.warning(f"Skipping category {category!r}: not an object")
            continue
        for pid, paper in group.items():
            if not isinstance(paper, dict):
                logger.warning(f"Skipping paper {category}/{pid}: not an object")
                continue
            rows[paper_key(str(category), str(pid))] = paper
    if not rows:
        return 0, 0
    if dry_run:
        with get_papers_db() as pdb:
            return len(rows), _existing(pdb, rows)
    with get_papers_db(flag="c") as pdb:
        replaced = _existing(pdb, rows)
        with pdb.transaction():
            for key in tqdm(rows, desc="papers", disable=len(rows) < 100):
                pdb[key] = rows[key]
    return len(rows), replaced


def import_mapping(section: dict, opener, label: str, dry_run: bool = False) -> tuple[int, int]:
    rows = {str(k): v for k, v in section.items() if isinstance(v, dict)}
    skipped = len(section) - len(rows)
    if skipped:
        logger.warning(f"Skipping {skipped} {label} entries that are not objects")
    if not rows:
        return 0, 0
    if dry_run:
        with opener() as db:
            return len(rows), _existing(db, rows)
    with opener(flag="c") as db:
        replaced = _existing(db, rows)
        db.set_many(rows)
    return len(rows), replaced


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        with open(args.export, encoding="utf-8") as f:
            tree = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(f"Cannot read export {args.export}: {exc}")
        return 1
    if not isinstance(tree, dict):
        logger.error("Export root must be a JSON object")
        return 1

    wanted = set(args.only or ["papers", "users", "ratings"])
    counts = {}
    if "papers" in wanted:
        counts["papers"] = import_papers(_section(tree, PAPERS_KEYS), args.dry_run)
    if "users" in wanted:
        counts["users"] = import_mapping(_section(tree, USERS_KEYS), get_users_db, "user", args.dry_run)
    if "ratings" in wanted:
        counts["ratings"] = import_mapping(_section(tree, RATINGS_KEYS), get_ratings_db, "rating", args.dry_run)

    summary = ", ".join(f"{n} {k} ({replaced} replaced)" for k, (n, replaced) in counts.items())
    logger.info(f"{'Parsed' if args.dry_run else 'Imported'} {summary}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
