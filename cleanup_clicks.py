"""
cleanup_clicks.py - retention sweep for click records

Deletes records whose last_click is older than --days (default
CLICKTRACK_RETENTION_DAYS, 90). Uses the configured storage backend, so run it
with CLICKTRACK_STORAGE_BACKEND=postgres and CLICKTRACK_DB_DSN set.

Usage:
  python cleanup_clicks.py --days 90
"""
import argparse
import logging
import time

from clicktrack_platform.config import settings
from clicktrack_platform.storage.click_store import ClickStore
from clicktrack_platform.storage.storage_factory import get_storage


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--days", type=int, default=settings.RETENTION_DAYS)
    parser.add_argument("--backend", default=None, help='"memory" or "postgres" (default: env)')
    parser.add_argument("--dsn", default=None)
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    kwargs = {"dsn": args.dsn} if args.dsn else {}
    store = ClickStore(get_storage(args.backend, **kwargs))

    t0 = time.perf_counter()
    removed = store.cleanup(days=args.days)
    dt = time.perf_counter() - t0
    print(f"REMOVED: {removed} records older than {args.days} days")
    print(f"TOTAL:   {dt:.3f} s")


if __name__ == "__main__":
    main()
