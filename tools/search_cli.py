"""
Query the local paper store from the terminal.

    python -m tools search "diabetes management" --sort date --year 2023
    python -m tools search suggest diab
    python -m tools search autocorrect "diabetis managment"
"""

import argparse
import json
import os
import sys

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from loguru import logger

from backend.schemas.search import SortMode
from backend.services.data_service import SnapshotCache
from backend.services.phrase_service import related_phrases
from backend.services.search_service import search
from backend.services.suggest_service import autocorrect_phrase, did_you_mean, suggest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search the paper store")
    sub = parser.add_subparsers(dest="command")

    p_query = sub.add_parser("query", help="ranked search")
    p_query.add_argument("q", nargs="?", default="", help="query text (blank lists everything)")
    p_query.add_argument("--sort", default="relevance", choices=[m.value for m in SortMode])
    p_query.add_argument("--year", default="")
    p_query.add_argument("--type", default="")
    p_query.add_argument("--author", default="")
    p_query.add_argument("--access", default="")
    p_query.add_argument("--rating", type=float, default=None)
    p_query.add_argument("--no-fuzzy", action="store_true", default=False)
    p_query.add_argument("-n", "--limit", type=int, default=10)
    p_query.add_argument("--json", action="store_true", default=False, help="print JSON")

    p_suggest = sub.add_parser("suggest", help="typeahead suggestions")
    p_suggest.add_argument("q")
    p_suggest.add_argument("-n", "--limit", type=int, default=8)

    p_fix = sub.add_parser("autocorrect", help="corrected phrase and did-you-mean")
    p_fix.add_argument("q")
    return parser


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    # "search <text>" is shorthand for "search query <text>".
    if argv and argv[0] not in {"query", "suggest", "autocorrect", "-h", "--help"}:
        argv.insert(0, "query")
    args = build_parser().parse_args(argv)
    if not args.command:
        build_parser().print_help()
        return 0

    snapshot, vocab = SnapshotCache().get()
    if args.command == "suggest":
        for term in suggest(args.q, vocab, args.limit):
            print(term)
        return 0
    if args.command == "autocorrect":
        print(autocorrect_phrase(args.q, vocab))
        for alt in did_you_mean(args.q, vocab):
            print(f"  did you mean: {alt}")
        return 0

    filters = {
        "year": args.year,
        "type": args.type,
        "author": args.author,
        "access": args.access,
        "rating": args.rating,
    }
    outcome = search(args.q, snapshot, filters, args.sort, fuzzy=not args.no_fuzzy)
    logger.debug(f"{outcome.total} results in {outcome.elapsed_ms:.1f}ms")
    top = outcome.results[: max(0, args.limit)]
    if args.json:
        print(json.dumps([r.to_api() for r in top], ensure_ascii=False, indent=2))
        return 0

    print(f"{outcome.total} results ({outcome.elapsed_ms:.1f} ms)")
    for r in top:
        year = r.year or "----"
        print(f"  [{r.score:.3f}] {year}  {r.record.title}  ({r.record.id})")
    phrases = related_phrases(args.q, outcome.results)
    if phrases:
        print("related:")
        for phrase in phrases:
            print(f"  - {phrase}")
    if args.q and outcome.total == 0:
        for alt in did_you_mean(args.q, vocab):
            print(f"  did you mean: {alt}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
