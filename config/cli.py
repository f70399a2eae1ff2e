#!/usr/bin/env python3
"""
Configuration Management CLI Tool

Usage:
    python -m config.cli show          # Show current configuration
    python -m config.cli show --json   # JSON format output
    python -m config.cli validate      # Validate configuration
"""

from __future__ import annotations

import argparse
import json
import sys


def cmd_show(args):
    """Show current configuration"""
    from config.settings import settings

    if args.json:
        data = settings.model_dump(mode="json")
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return

    print("=" * 60)
    print("Paper Search Configuration")
    print("=" * 60)

    print("\n📁 Data:")
    print(f"  data_dir:     {settings.data_dir}")
    print(f"  db_path:      {settings.db_path}")

    print("\n🌐 Service Configuration:")
    print(f"  host:         {settings.host}")
    print(f"  serve_port:   {settings.serve_port}")
    print(f"  access_log:   {settings.web.access_log}")

    print("\n🗄️ Database Configuration:")
    print(f"  timeout:          {settings.db.timeout}s")
    print(f"  max_retries:      {settings.db.max_retries}")
    print(f"  retry_base_sleep: {settings.db.retry_base_sleep}s")
    print(f"  load_workers:     {settings.db.load_workers}")

    s = settings.search
    print("\n🔍 Search Configuration:")
    print(f"  fuzzy_enabled:    {s.fuzzy_enabled}")
    print(f"  fuzzy_threshold:  {s.fuzzy_threshold}")
    print(f"  token_threshold:  {s.token_threshold}")
    print(f"  blend:            fuzzy={s.fuzzy_weight} coverage={s.coverage_weight}")
    print(f"  prefix_bonus:     {s.prefix_bonus}")
    print(f"  per_page:         {s.per_page}")

    print("\n💡 Suggestion Configuration:")
    print(f"  suggestion_limit: {s.suggestion_limit}")
    print(f"  suggest_threshold:{s.suggest_threshold}")
    print(f"  autocorrect:      {s.autocorrect_threshold}")
    print(f"  did_you_mean:     {s.did_you_mean_limit}")
    print(f"  debounce_ms:      {s.debounce_ms}")

    print("\n🧩 Related Phrases:")
    print(f"  phrase_limit:     {s.phrase_limit}")
    print(f"  top_records:      {s.phrase_top_records}")
    print(f"  threshold:        {s.phrase_threshold}")
    print(
        f"  weights:          jaccard={s.phrase_jaccard_weight} "
        f"token={s.phrase_token_weight} string={s.phrase_string_weight}"
    )

    print("\n📋 Log Configuration:")
    print(f"  log_level:    {settings.log_level}")
    print(f"  log_format:   {settings.log_format}")
    print(f"  sentry:       {'enabled' if settings.sentry.enabled and settings.sentry.dsn else 'disabled'}")

    print("\n" + "=" * 60)


def cmd_validate(args):
    """Validate configuration"""
    from config.settings import settings

    errors = []
    warnings = []

    if not settings.data_dir.exists():
        warnings.append(f"Data directory does not exist: {settings.data_dir}")
    elif not settings.db_path.exists():
        warnings.append(f"Store file does not exist yet: {settings.db_path}")

    s = settings.search
    for name in (
        "fuzzy_threshold",
        "token_threshold",
        "suggest_threshold",
        "autocorrect_threshold",
        "phrase_threshold",
        "phrase_dedup_jaccard",
    ):
        value = getattr(s, name)
        if not 0.0 <= value <= 1.0:
            errors.append(f"search.{name} must be within [0, 1] (got {value})")

    if abs((s.fuzzy_weight + s.coverage_weight) - 1.0) > 1e-6:
        warnings.append("search.fuzzy_weight + search.coverage_weight does not sum to 1")
    if abs((s.phrase_jaccard_weight + s.phrase_token_weight + s.phrase_string_weight) - 1.0) > 1e-6:
        warnings.append("phrase score weights do not sum to 1")

    if s.per_page > s.max_per_page:
        errors.append("search.per_page exceeds search.max_per_page")

    if settings.sentry.enabled and not settings.sentry.dsn:
        warnings.append("Sentry is enabled but no DSN is configured")

    if errors:
        print("❌ Configuration validation failed:")
        for e in errors:
            print(f"  - {e}")
        print()

    if warnings:
        print("⚠️  Configuration warnings:")
        for w in warnings:
            print(f"  - {w}")
        print()

    if not errors and not warnings:
        print("✅ Configuration validation passed")
    elif not errors:
        print("✅ Configuration validation passed (with warnings)")

    return 1 if errors else 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Paper Search Configuration Management Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m config.cli show          Show current configuration
  python -m config.cli show --json   JSON format output
  python -m config.cli validate      Validate configuration
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    show_parser = subparsers.add_parser("show", help="Show current configuration")
    show_parser.add_argument("--json", action="store_true", help="JSON format output")

    subparsers.add_parser("validate", help="Validate configuration")

    args = parser.parse_args(argv)

    if args.command == "show":
        cmd_show(args)
        return 0
    if args.command == "validate":
        return cmd_validate(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
