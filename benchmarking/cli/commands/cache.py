"""Result cache CLI commands."""
from __future__ import annotations

import argparse
import sqlite3

from benchmarking.cache import ResultCache


def _cache(args: argparse.Namespace) -> ResultCache:
    return ResultCache(args.cache) if args.cache else ResultCache()


def cmd_cache_stats(args: argparse.Namespace) -> int:
    try:
        stats = _cache(args).stats()
    except (sqlite3.Error, OSError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Cache:   {stats.path}")
    print(f"Entries: {stats.entries}")
    print(f"Size:    {stats.size_bytes / 1024:.1f} KiB")
    return 0


def cmd_cache_clear(args: argparse.Namespace) -> int:
    cache = _cache(args)
    scope = f"keys starting with {args.prefix!r}" if args.prefix else "all entries"
    print(f"Cache: {cache.path} ({scope})")

    # Confirm unless --force
    if not args.force:
        response = input("\nProceed with deletion? [y/N] ").strip().lower()
        if response != "y":
            print("Aborted.")
            return 0

    try:
        deleted = cache.clear(prefix=args.prefix)
    except (sqlite3.Error, OSError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Deleted: {deleted}")
    return 0
