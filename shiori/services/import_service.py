"""
Bookmeter bulk import service.

Handles the full "import everything a user has read" pipeline:
1. Fetch the user's read shelf one page at a time
2. Parse each page into candidate records
3. Skip candidates already in the library
4. Save new candidates as finished manga
5. Report progress after every page, pausing between fetches

Pages are processed strictly one after another. The run ends at the first
empty page, at the first unrecovered error, or when cancelled between pages.
"""

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable

from sqlalchemy.orm import Session, sessionmaker

from shiori.core.errors import LibraryError, ShioriError
from shiori.core.logging import get_logger, import_id_var
from shiori.models.book import BookType, ReadingStatus
from shiori.services.book_dedup import DuplicateResolver
from shiori.services.catalog_client import BookmeterClient
from shiori.services.catalog_parser import CatalogRecord, ParseMode, parse_catalog_page
from shiori.services.library_store import Classification, LibraryStore
from shiori.services.pacing import PacingPolicy
from shiori.services.pagination import PaginationCursor

logger = get_logger(__name__)

# Everything on a Bookmeter read shelf is filed as manga the user has finished
DEFAULT_CLASSIFICATION = Classification(
    book_type=BookType.MANGA,
    reading_status=ReadingStatus.WANT_TO_READ,
)


@dataclass(frozen=True)
class ImportProgress:
    """Snapshot of a bulk import run after its most recent page."""

    current_page: int = 0
    total_records_seen: int = 0
    new_records_added: int = 0
    duplicates_skipped: int = 0
    cancelled: bool = False


ProgressCallback = Callable[[ImportProgress], Awaitable[None] | None]


class BookmeterImporter:
    """Walks a Bookmeter user's read shelf into the local library."""

    def __init__(
        self,
        client: BookmeterClient,
        store: LibraryStore,
        pacing: PacingPolicy | None = None,
        classification: Classification = DEFAULT_CLASSIFICATION,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.client = client
        self.store = store
        self.resolver = DuplicateResolver(store)
        self.pacing = pacing or PacingPolicy.disabled()
        self.classification = classification
        self.clock = clock

    async def import_all(
        self,
        user_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ImportProgress:
        """
        Import every book on a user's read shelf.

        Args:
            user_id: Bookmeter user id
            on_progress: Called once per non-empty page with the updated totals
            cancel_event: Checked before each page fetch; when set the run stops

        Returns:
            Final ImportProgress

        Raises:
            CatalogError: first fetch, decode or parse failure
            LibraryError: if a new record cannot be inserted
        """
        cursor = PaginationCursor(target=user_id)
        progress = ImportProgress()
        self.pacing.reset()

        logger.info(f"Starting Bookmeter import for user {user_id}")

        try:
            while cursor.should_fetch_next():
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Import cancelled before page {cursor.page}")
                    return replace(progress, cancelled=True)

                await self.pacing.wait()
                markup = await self.client.list_user_items(user_id, cursor.page)
                records = parse_catalog_page(markup, ParseMode.USER_SHELF)
                cursor.advance(len(records))

                if not records:
                    logger.info(f"Page {cursor.page} is empty, import finished")
                    break

                progress = self._process_page(records, progress, page=cursor.page - 1)
                await self._notify(on_progress, progress)

        except ShioriError as e:
            if e.partial_progress is None:
                e.partial_progress = progress
            logger.error(
                f"Import aborted on page {cursor.page}: {e.message}",
                extra={"extra_fields": {"progress": progress_as_dict(e.partial_progress)}},
            )
            raise

        logger.info(
            f"Import finished: {progress.new_records_added} added, "
            f"{progress.duplicates_skipped} duplicates skipped"
        )
        return progress

    def _process_page(
        self,
        records: list[CatalogRecord],
        progress: ImportProgress,
        page: int,
    ) -> ImportProgress:
        """
        Dedup and save one page, counting each record as soon as it is handled.

        A failure mid-page carries the counts for the records before it.
        """
        start = progress

        for record in records:
            try:
                duplicate = self.resolver.exists(record.title, record.author)
                if not duplicate:
                    self._save_as_finished(record)
            except ShioriError as e:
                e.partial_progress = progress
                raise

            progress = ImportProgress(
                current_page=page,
                total_records_seen=progress.total_records_seen + 1,
                new_records_added=progress.new_records_added + (0 if duplicate else 1),
                duplicates_skipped=progress.duplicates_skipped + (1 if duplicate else 0),
            )

        logger.debug(
            f"Page {page}: {progress.new_records_added - start.new_records_added} added, "
            f"{progress.duplicates_skipped - start.duplicates_skipped} duplicates"
        )
        return progress

    def _save_as_finished(self, record: CatalogRecord) -> int:
        book_id = self.store.insert(record, self.classification)

        try:
            self.store.update_status(book_id, ReadingStatus.FINISHED, self.clock())
        except LibraryError as e:
            # The entry exists either way; only its status is stale
            logger.warning(f"Saved '{record.title}' but could not mark it finished: {e}")

        return book_id

    @staticmethod
    async def _notify(on_progress: ProgressCallback | None, progress: ImportProgress) -> None:
        if on_progress is None:
            return
        result = on_progress(progress)
        if inspect.isawaitable(result):
            await result


@dataclass
class ImportJob:
    """A bulk import started through the API."""

    import_id: str
    user_id: str
    status: str = "pending"  # pending, processing, completed, cancelled, failed
    message: str | None = None
    progress: ImportProgress = field(default_factory=ImportProgress)
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status in ("pending", "processing")


class ImportJobRegistry:
    """In-memory registry of API-triggered import runs."""

    def __init__(self, max_finished: int = 20):
        self.max_finished = max_finished
        self._jobs: dict[str, ImportJob] = {}

    def create(self, user_id: str) -> ImportJob:
        if self.active_job() is not None:
            raise ValueError("An import is already running")

        self._prune()
        job = ImportJob(import_id=str(uuid.uuid4()), user_id=user_id)
        self._jobs[job.import_id] = job
        return job

    def _prune(self) -> None:
        """Drop the oldest finished jobs so that at most max_finished remain."""
        finished = sorted(
            (job for job in self._jobs.values() if not job.is_active),
            key=lambda j: j.started_at,
        )
        for job in finished[: max(len(finished) - self.max_finished, 0)]:
            del self._jobs[job.import_id]

    def get(self, import_id: str) -> ImportJob | None:
        return self._jobs.get(import_id)

    def active_job(self) -> ImportJob | None:
        for job in self._jobs.values():
            if job.is_active:
                return job
        return None

    def cancel(self, import_id: str) -> ImportJob | None:
        job = self._jobs.get(import_id)
        if job is not None and job.is_active:
            job.cancel_event.set()
            job.message = "Cancelling..."
        return job

    def history(self, limit: int = 10) -> list[ImportJob]:
        jobs = sorted(self._jobs.values(), key=lambda j: j.started_at, reverse=True)
        return jobs[:limit]


async def run_import_job(
    job: ImportJob,
    client: BookmeterClient,
    session_factory: sessionmaker[Session],
    pacing: PacingPolicy,
) -> None:
    """
    Run a registered import job to completion.

    This runs as a background task; the outcome is recorded on the job.
    """
    token = import_id_var.set(job.import_id)
    job.status = "processing"
    job.message = "Fetching page 1..."

    def on_progress(progress: ImportProgress) -> None:
        job.progress = progress
        job.message = f"Processed page {progress.current_page}"

    db = session_factory()
    try:
        importer = BookmeterImporter(client, LibraryStore(db), pacing=pacing)
        final = await importer.import_all(job.user_id, on_progress, job.cancel_event)
        job.progress = final
        if final.cancelled:
            job.status = "cancelled"
            job.message = "Import cancelled"
        else:
            job.status = "completed"
            job.message = "Import complete"

    except ShioriError as e:
        if e.partial_progress is not None:
            job.progress = e.partial_progress
        job.status = "failed"
        job.error = e.message
        job.message = "Import failed"

    except Exception as e:
        logger.exception(f"Import {job.import_id} failed unexpectedly: {e}")
        job.status = "failed"
        job.error = f"Unexpected error: {e}"
        job.message = "Import failed"

    finally:
        job.completed_at = datetime.utcnow()
        db.close()
        import_id_var.reset(token)


def progress_as_dict(progress: ImportProgress) -> dict[str, Any]:
    return {
        "current_page": progress.current_page,
        "total_records_seen": progress.total_records_seen,
        "new_records_added": progress.new_records_added,
        "duplicates_skipped": progress.duplicates_skipped,
        "cancelled": progress.cancelled,
    }
