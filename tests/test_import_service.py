"""Tests for the Bookmeter bulk importer."""

import asyncio
from datetime import datetime

import httpx
import pytest

from shiori.core.errors import BadServerResponseError, LibraryError, NetworkError
from shiori.models.book import BookType, ReadingStatus
from shiori.services.catalog_client import BookmeterClient
from shiori.services.import_service import (
    BookmeterImporter,
    ImportJobRegistry,
    ImportProgress,
    run_import_job,
)
from shiori.services.library_store import LibraryStore
from shiori.services.pacing import PacingPolicy

from catalog_pages import CatalogStub, book_item, empty_page, redirect_to, shelf_page

SHELF = "/users/42/books/read"
FINISHED_AT = datetime(2024, 5, 1, 9, 30)


def run_import(store, stub, **kwargs):
    """Import user 42 through a client wired to the stub and collect callbacks."""
    updates: list[ImportProgress] = []
    pacing = kwargs.pop("pacing", None)
    cancel_event = kwargs.pop("cancel_event", None)
    on_progress = kwargs.pop("on_progress", updates.append)

    async def _go():
        async with BookmeterClient(transport=stub.transport) as client:
            importer = BookmeterImporter(
                client, store, pacing=pacing, clock=lambda: FINISHED_AT
            )
            return await importer.import_all("42", on_progress, cancel_event)

    return asyncio.run(_go()), updates


class TestImportAll:
    """End-to-end page walking, dedup and persistence."""

    def test_single_page_with_one_duplicate(self, store, add_book):
        add_book("B", "Y")
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([
                book_item("A", "X"),
                book_item("B", "Y"),
                book_item("C"),
            ])),
            (SHELF, 2): (200, empty_page()),
        })

        final, updates = run_import(store, stub)

        assert len(updates) == 1
        assert final == ImportProgress(
            current_page=1,
            total_records_seen=3,
            new_records_added=2,
            duplicates_skipped=1,
        )
        assert [r.url.params.get("page") for r in stub.requests] == [None, "2"]

        new_books = store.list_books(book_type=BookType.MANGA, status=ReadingStatus.FINISHED)
        assert {b.title for b in new_books} == {"A", "C"}
        assert all(b.date_finished == FINISHED_AT for b in new_books)

    def test_progress_reported_per_page(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A"), book_item("B")])),
            (SHELF, 2): (200, shelf_page([book_item("C")])),
            (SHELF, 3): (200, empty_page()),
        })

        final, updates = run_import(store, stub)

        assert [u.current_page for u in updates] == [1, 2]
        assert [u.new_records_added for u in updates] == [2, 3]
        assert final.total_records_seen == 3

    def test_same_record_on_later_page_is_duplicate(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A", "X")])),
            (SHELF, 2): (200, shelf_page([book_item("A", "X")])),
            (SHELF, 3): (200, empty_page()),
        })

        final, _ = run_import(store, stub)

        assert final.new_records_added == 1
        assert final.duplicates_skipped == 1
        assert len(store.list_books()) == 1

    def test_empty_first_page(self, store):
        stub = CatalogStub({(SHELF, None): (200, empty_page())})

        final, updates = run_import(store, stub)

        assert final == ImportProgress()
        assert updates == []
        assert len(stub.requests) == 1

    def test_async_progress_callback(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (200, empty_page()),
        })
        seen = []

        async def on_progress(progress):
            seen.append(progress.current_page)

        run_import(store, stub, on_progress=on_progress)

        assert seen == [1]


class TestImportFailures:
    """The first failure aborts the run and carries partial progress."""

    def test_server_error_on_second_page(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A"), book_item("B")])),
            (SHELF, 2): (500, "oops"),
        })
        updates = []

        with pytest.raises(BadServerResponseError) as exc_info:
            run_import(store, stub, on_progress=updates.append)

        assert exc_info.value.status_code == 500
        assert len(updates) == 1
        assert exc_info.value.partial_progress.current_page == 1
        assert exc_info.value.partial_progress.new_records_added == 2
        # Entries saved before the failure stay saved
        assert len(store.list_books()) == 2

    def test_network_failure_on_first_page(self, store):
        stub = CatalogStub({(SHELF, None): httpx.ConnectTimeout("timed out")})

        with pytest.raises(NetworkError) as exc_info:
            run_import(store, stub)

        assert exc_info.value.kind == "timeout"
        assert exc_info.value.partial_progress == ImportProgress()

    def test_status_update_failure_still_counts_as_new(self, db):
        class FlakyStatusStore(LibraryStore):
            def update_status(self, book_id, status, timestamp=None):
                raise LibraryError("disk full")

        store = FlakyStatusStore(db)
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (200, empty_page()),
        })

        final, _ = run_import(store, stub)

        assert final.new_records_added == 1
        [book] = store.list_books()
        assert book.reading_status == ReadingStatus.WANT_TO_READ

    def test_insert_failure_aborts(self, db):
        class BrokenStore(LibraryStore):
            def insert(self, *args, **kwargs):
                raise LibraryError("locked")

        stub = CatalogStub({(SHELF, None): (200, shelf_page([book_item("A")]))})

        with pytest.raises(LibraryError) as exc_info:
            run_import(BrokenStore(db), stub)

        assert exc_info.value.partial_progress.new_records_added == 0

    def test_failure_mid_page_keeps_counts_for_saved_records(self, db):
        class FailsOnSecondInsert(LibraryStore):
            inserts = 0

            def insert(self, *args, **kwargs):
                self.inserts += 1
                if self.inserts == 2:
                    raise LibraryError("locked")
                return super().insert(*args, **kwargs)

        store = FailsOnSecondInsert(db)
        stub = CatalogStub({(SHELF, None): (200, shelf_page([book_item("A"), book_item("B")]))})

        with pytest.raises(LibraryError) as exc_info:
            run_import(store, stub)

        partial = exc_info.value.partial_progress
        assert [b.title for b in store.list_books()] == ["A"]
        assert partial.new_records_added == 1
        assert partial.total_records_seen == 1
        assert partial.duplicates_skipped == 0


class TestCancellationAndPacing:
    def test_cancel_between_pages(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (200, shelf_page([book_item("B")])),
        })
        cancel = asyncio.Event()

        def on_progress(progress):
            cancel.set()

        final, _ = run_import(store, stub, on_progress=on_progress, cancel_event=cancel)

        assert final.cancelled is True
        assert final.new_records_added == 1
        assert len(stub.requests) == 1

    def test_cancel_before_first_page(self, store):
        stub = CatalogStub()
        cancel = asyncio.Event()
        cancel.set()

        final, _ = run_import(store, stub, cancel_event=cancel)

        assert final == ImportProgress(cancelled=True)
        assert stub.requests == []

    def test_pauses_between_page_fetches(self, store):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (200, shelf_page([book_item("B")])),
            (SHELF, 3): (200, empty_page()),
        })
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        pacing = PacingPolicy(0.5, sleep=fake_sleep, clock=lambda: 10.0)

        run_import(store, stub, pacing=pacing)

        assert sleeps == [0.5, 0.5]


class TestImportJobs:
    def test_only_one_active_job(self):
        jobs = ImportJobRegistry()
        jobs.create("1")

        with pytest.raises(ValueError):
            jobs.create("2")

    def test_run_import_job_records_outcome(self, session_factory):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (200, empty_page()),
        })
        jobs = ImportJobRegistry()
        job = jobs.create("42")

        async def _go():
            async with BookmeterClient(transport=stub.transport) as client:
                await run_import_job(job, client, session_factory, PacingPolicy.disabled())

        asyncio.run(_go())

        assert job.status == "completed"
        assert job.progress.new_records_added == 1
        assert job.completed_at is not None
        assert jobs.active_job() is None

    def test_failed_job_keeps_partial_progress(self, session_factory):
        stub = CatalogStub({
            (SHELF, None): (200, shelf_page([book_item("A")])),
            (SHELF, 2): (503, "unavailable"),
        })
        job = ImportJobRegistry().create("42")

        async def _go():
            async with BookmeterClient(transport=stub.transport) as client:
                await run_import_job(job, client, session_factory, PacingPolicy.disabled())

        asyncio.run(_go())

        assert job.status == "failed"
        assert job.error == "Catalog returned HTTP 503"
        assert job.progress.current_page == 1

    def test_redirect_loop_fails_job_and_frees_registry(self, session_factory):
        stub = CatalogStub({(SHELF, None): redirect_to(SHELF)})
        jobs = ImportJobRegistry()
        job = jobs.create("42")

        async def _go():
            async with BookmeterClient(transport=stub.transport) as client:
                await run_import_job(job, client, session_factory, PacingPolicy.disabled())

        asyncio.run(_go())

        assert job.status == "failed"
        assert jobs.active_job() is None
        assert jobs.create("42").status == "pending"

    def test_unexpected_error_fails_job(self, session_factory):
        class BrokenClient(BookmeterClient):
            async def list_user_items(self, user_id, page=1):
                raise RuntimeError("boom")

        job = ImportJobRegistry().create("42")

        async def _go():
            async with BrokenClient(transport=CatalogStub().transport) as client:
                await run_import_job(job, client, session_factory, PacingPolicy.disabled())

        asyncio.run(_go())

        assert job.status == "failed"
        assert "boom" in job.error
        assert job.completed_at is not None

    def test_finished_jobs_are_pruned(self):
        jobs = ImportJobRegistry(max_finished=2)
        created = []
        for user_id in ("1", "2", "3", "4"):
            job = jobs.create(user_id)
            job.status = "completed"
            created.append(job)

        kept = {job.import_id for job in jobs.history(limit=10)}

        assert created[0].import_id not in kept
        assert created[-1].import_id in kept
        assert len(kept) == 3
