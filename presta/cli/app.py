# =============================================================================
# presta/cli/app.py: presta command line
# =============================================================================
#
# Two subcommands:
#
#   presta build PAGES [--out DIR] [--config FILE] [--json] [--quiet]
#       Imports PAGES (``module:attribute`` or a page module with
#       get_static_paths()/render(path)), flushes every page through the
#       load engine and writes the HTML into DIR.
#
#   presta cache dump|clear [--key KEY] [--config FILE]
#       Inspects or resets the durable load cache.  ``clear`` without
#       --key deletes the whole backing file.
#
# --json prints a machine-readable summary and implies --quiet, which sends
# every log line to stderr at WARNING+ so stdout stays clean.
# =============================================================================

"""Command line interface for presta builds and cache maintenance."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Sequence

from presta.config.loader import DEFAULT_CONFIG_PATH, load_settings
from presta.config.settings import Settings
from presta.utils.errors import BuildError, PrestaError
from presta.utils.logging import configure_logging


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _build(args: argparse.Namespace, app_settings: Settings) -> int:
    """Load the pages and run a static build; 1 on any page failure."""
    from presta.main import create_engine
    from presta.services.page_loader import load_pages
    from presta.services.static_builder import StaticBuilder

    # Page modules live in the site project, not in an installed package.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    pages = load_pages(args.pages)
    engine = create_engine(app_settings)
    builder = StaticBuilder(engine, app_settings.output_dir)

    try:
        summary = await builder.build(pages)
    except BuildError as exc:
        if args.json_output:
            print(json.dumps({
                "ok": False,
                "error": exc.message,
                "failures": {path: str(err) for path, err in exc.failures.items()},
            }, indent=2))
        else:
            print(f"Error: {exc}", file=sys.stderr)
            for path, err in exc.failures.items():
                print(f"  {path}: {err}", file=sys.stderr)
        return 1

    if args.json_output:
        print(json.dumps({"ok": True, **summary.model_dump(mode="json")}, indent=2))
    else:
        print(
            f"Built {summary.page_count} page(s) into {summary.output_dir} "
            f"in {summary.duration:.2f}s"
        )
    return 0


def _cache(args: argparse.Namespace, app_settings: Settings) -> int:
    """Dump or clear the configured cache store."""
    from presta.main import create_store

    store = create_store(app_settings)

    if args.action == "dump":
        data = store.dump()
        if args.key is not None:
            if args.key not in data:
                print(f"Error: no cached value for key {args.key!r}", file=sys.stderr)
                return 1
            data = {args.key: data[args.key]}
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        return 0

    if args.key is not None:
        store.clear(args.key)
        print(f"Cleared {args.key}")
    else:
        store.cleanup()
        print("Cleared load cache")
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _add_common_options(
    parser: argparse.ArgumentParser, config_default: str, quiet_default: bool | str
) -> None:
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=config_default,
        help=f"YAML config file (default: {DEFAULT_CONFIG_PATH}).",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        default=quiet_default,
        help="Only log warnings and errors, to stderr.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="presta",
        description="Build static pages whose data loads through the presta load cache.",
    )
    _add_common_options(parser, DEFAULT_CONFIG_PATH, False)

    # Same options after the subcommand; SUPPRESS keeps a value given
    # before it from being reset to the default.
    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common, argparse.SUPPRESS, argparse.SUPPRESS)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", parents=[common], help="Render pages to static HTML.")
    build.add_argument(
        "pages",
        type=str,
        help="Page source: 'module:attribute' or a page module.",
    )
    build.add_argument(
        "--out", "-o",
        type=str,
        default=None,
        help="Output directory (overrides output_dir from config).",
    )
    build.add_argument(
        "--max-passes",
        type=int,
        default=None,
        help="Render pass limit per page; 0 disables the limit.",
    )
    build.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the build summary as JSON.",
    )

    cache = subparsers.add_parser("cache", parents=[common], help="Inspect or reset the load cache.")
    cache.add_argument("action", choices=["dump", "clear"])
    cache.add_argument(
        "--key", "-k",
        type=str,
        default=None,
        help="Restrict the action to one cache key.",
    )
    return parser


def run(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, configure logging and execute the subcommand."""
    args = _build_parser().parse_args(argv)
    json_output = getattr(args, "json_output", False)

    try:
        app_settings = load_settings(
            args.config,
            output_dir=getattr(args, "out", None),
            max_passes=getattr(args, "max_passes", None),
        )
    except PrestaError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.quiet or json_output:
        configure_logging("WARNING", stream=sys.stderr, app_env=app_settings.app_env)
    else:
        configure_logging(app_settings.log_level, app_env=app_settings.app_env)

    try:
        if args.command == "build":
            return asyncio.run(_build(args, app_settings))
        return _cache(args, app_settings)
    except PrestaError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main() -> None:
    """Console-script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
