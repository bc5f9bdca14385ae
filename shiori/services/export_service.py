"""
Library export and import as JSON documents.
"""

from datetime import datetime

from pydantic import ValidationError

from shiori.core.config import get_settings
from shiori.core.errors import LibraryError
from shiori.core.logging import get_logger
from shiori.schemas.library import ExportedBook, LibraryExport, LibraryImportResult
from shiori.services.book_dedup import DuplicateResolver
from shiori.services.catalog_parser import CatalogRecord
from shiori.services.library_store import Classification, LibraryStore

logger = get_logger(__name__)


def export_library(store: LibraryStore) -> LibraryExport:
    """Build an export document with every saved book."""
    books = [ExportedBook.model_validate(book) for book in store.list_books()]
    return LibraryExport(
        metadata={
            "exported_at": datetime.utcnow(),
            "app_version": get_settings().APP_VERSION,
            "book_count": len(books),
        },
        books=books,
    )


def parse_library_export(content: bytes | str) -> LibraryExport:
    """
    Validate an export document.

    Raises:
        ValueError: if the content is not a valid export
    """
    try:
        return LibraryExport.model_validate_json(content)
    except ValidationError as e:
        raise ValueError(f"Invalid library export: {e.error_count()} errors") from e


def import_library(
    store: LibraryStore,
    document: LibraryExport,
    replace_existing: bool = False,
) -> LibraryImportResult:
    """
    Restore books from an export document.

    Books already in the library are skipped. With ``replace_existing`` the
    library is cleared first.
    """
    result = LibraryImportResult()

    if replace_existing:
        removed = store.clear()
        logger.info(f"Cleared {removed} books before import")

    resolver = DuplicateResolver(store)

    for entry in document.books:
        if resolver.exists(entry.title, entry.author):
            result.skipped += 1
            continue

        record = CatalogRecord(
            title=entry.title,
            thumbnail_url=entry.thumbnail_url,
            author=entry.author,
            page_count=entry.page_count,
        )
        classification = Classification(
            book_type=entry.book_type,
            reading_status=entry.reading_status,
            series=entry.series,
        )
        try:
            store.insert(
                record,
                classification,
                date_added=entry.date_added,
                date_started=entry.date_started,
                date_finished=entry.date_finished,
            )
        except LibraryError as e:
            result.errors.append(f"Book '{entry.title}': {e.message}")
            continue

        result.imported += 1

    logger.info(f"Library import finished: {result.summary}")
    return result
