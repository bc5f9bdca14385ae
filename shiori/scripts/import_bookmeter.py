"""
Import a Bookmeter user's read shelf into the local library.

Run with: shiori-import-bookmeter USER_ID
      or: python -m shiori.scripts.import_bookmeter USER_ID
"""

import argparse
import asyncio
import signal
import sys
import time

from shiori.core.config import get_settings
from shiori.core.database import create_db_engine, create_session_factory, init_db
from shiori.core.errors import ShioriError
from shiori.core.logging import setup_logging
from shiori.services.catalog_client import BookmeterClient
from shiori.services.import_service import BookmeterImporter, ImportProgress
from shiori.services.library_store import LibraryStore
from shiori.services.pacing import PacingPolicy


def progress_callback(progress: ImportProgress):
    """Print one line per processed page."""
    print(
        f"  Page {progress.current_page}: {progress.total_records_seen} seen, "
        f"{progress.new_records_added} added, {progress.duplicates_skipped} duplicates"
    )


def print_summary(progress: ImportProgress, elapsed: float):
    print("\n=== Import Complete ===" if not progress.cancelled else "\n=== Import Cancelled ===")
    print(f"Time elapsed: {elapsed:.1f} seconds")
    print(f"Pages processed: {progress.current_page}")
    print(f"Books found: {progress.total_records_seen}")
    print(f"New books added: {progress.new_records_added}")
    print(f"Duplicates skipped: {progress.duplicates_skipped}")


async def run_import(user_id: str, database_url: str, interval: float) -> ImportProgress:
    engine = create_db_engine(database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl-C aborts instead
        pass

    db = session_factory()
    try:
        async with BookmeterClient() as client:
            importer = BookmeterImporter(client, LibraryStore(db), pacing=PacingPolicy(interval))
            return await importer.import_all(user_id, progress_callback, cancel_event)
    finally:
        db.close()
        engine.dispose()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Import read books from Bookmeter")
    parser.add_argument("user_id", help="Bookmeter user id (bookmeter.com/users/[USER_ID])")
    parser.add_argument(
        "--database-url",
        default=settings.DATABASE_URL,
        help="Library database URL (default: %(default)s)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.IMPORT_PAGE_INTERVAL_SECONDS,
        help="Minimum seconds between page requests (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    if args.interval < 0:
        parser.error("--interval must be >= 0")

    setup_logging()

    print(f"Importing read books for Bookmeter user {args.user_id}...\n")
    start_time = time.time()

    try:
        progress = asyncio.run(run_import(args.user_id, args.database_url, args.interval))
    except ShioriError as e:
        print(f"\n✗ Import failed: {e.message}")
        if e.partial_progress is not None:
            print_summary(e.partial_progress, time.time() - start_time)
        return 1

    print_summary(progress, time.time() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
