"""Entry point for the maintenance tools.

Usage:
  python -m tools import export.json [--only papers] [--dry-run]
  python -m tools search "diabetes management" --sort date
"""

from __future__ import annotations

import runpy
import sys

_COMMANDS: dict[str, tuple[str, str]] = {
    "import": ("tools.import_export", "load a database JSON export into the local store"),
    "search": ("tools.search_cli", "query, suggest and autocorrect against the local store"),
}


def _usage() -> str:
    width = max(len(name) for name in _COMMANDS)
    lines = [f"  {name.ljust(width)}  {desc}" for name, (_, desc) in sorted(_COMMANDS.items())]
    return "Usage: python -m tools <command> [args...]\n\nCommands:\n" + "\n".join(lines) + "\n"


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in {"-h", "--help", "help"}:
        sys.stderr.write(_usage())
        return 0

    name = argv.pop(0)
    if name not in _COMMANDS:
        sys.stderr.write(f"Unknown command: {name}\n\n{_usage()}")
        return 2

    sys.argv = [name] + argv
    try:
        runpy.run_module(_COMMANDS[name][0], run_name="__main__")
    except SystemExit as exc:
        if exc.code is None or isinstance(exc.code, int):
            return exc.code or 0
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
