# src/main.py — v2
"""CLI entry point: inspect and clear cached lookup failures.

Usage:
    failcache key <repository> <lookup_type> [identifiers...]
    failcache peek <repository> <lookup_type> [identifiers...]
    failcache clear <repository> <lookup_type> [identifiers...]

The cache backend comes from the environment / .env (CACHE_BACKEND, ...).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from failcache.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="failcache",
        description=f"failcache v{__version__} - inspect cached remote lookup failures",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    commands = (
        ("key", "Print the cache key of a lookup", _cmd_key),
        ("peek", "Show the cached failure of a lookup", _cmd_peek),
        ("clear", "Clear the cached failure of a lookup", _cmd_clear),
    )
    for name, help_text, func in commands:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("repository", help="Repository identity, e.g. organisationrepository")
        sub.add_argument("lookup_type", help="Lookup type, e.g. relationship")
        sub.add_argument("identifiers", nargs="*", help="Lookup identifiers, in order")
        sub.set_defaults(func=func)

    return parser


def _failed_lookups(args: argparse.Namespace):
    """Build a FailedLookupCache for the requested repository from settings."""
    from failcache.cache.cache_factory import create_cache_store
    from failcache.config.settings import Settings
    from failcache.remote.failed_lookups import FailedLookupCache
    from failcache.remote.ttl_policy import FailureTtlPolicy

    settings = Settings()
    return FailedLookupCache(
        args.repository,
        create_cache_store(settings),
        ttl_policy=FailureTtlPolicy.from_settings(settings),
        key_prefix=settings.failure_cache_key_prefix,
    )


def _cmd_key(args: argparse.Namespace) -> int:
    failures = _failed_lookups(args)
    try:
        print(failures.build_cache_key(args.lookup_type, args.identifiers))
    finally:
        failures.store.close()
    return 0


def _cmd_peek(args: argparse.Namespace) -> int:
    """Print the stored record as JSON; exit 1 when nothing is cached."""
    failures = _failed_lookups(args)
    try:
        record = failures.peek_cached_failure(args.lookup_type, *args.identifiers)
    finally:
        failures.store.close()
    if record is None:
        print("No cached failure")
        return 1
    print(json.dumps(record.to_cache(), indent=2))
    return 0


def _cmd_clear(args: argparse.Namespace) -> int:
    failures = _failed_lookups(args)
    try:
        failures.clear_cached_failure(args.lookup_type, *args.identifiers)
    finally:
        failures.store.close()
    print(f"Cleared {failures.build_cache_key(args.lookup_type, args.identifiers)}")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
