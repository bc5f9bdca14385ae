"""
Local library persistence.

LibraryStore wraps one SQLAlchemy session. Every write commits immediately so
that an entry inserted earlier in a bulk run is visible to later duplicate
checks. Failures are raised as LibraryError; callers decide whether to
propagate or fall back.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shiori.core.errors import BookNotFoundError, LibraryError
from shiori.core.logging import get_logger
from shiori.models.book import BookType, ReadingStatus, SavedBook
from shiori.services.catalog_parser import CatalogRecord

logger = get_logger(__name__)

STANDALONE_SERIES = "Standalone Books"


@dataclass(frozen=True)
class Classification:
    """How a new entry is filed in the library."""

    book_type: BookType
    reading_status: ReadingStatus = ReadingStatus.WANT_TO_READ
    series: str | None = None


@dataclass(frozen=True)
class SeriesSummary:
    series_name: str
    book_type: BookType
    book_count: int
    completed_count: int
    currently_reading_count: int
    last_book_thumbnail: str
    last_read_date: datetime | None

    @property
    def display_status(self) -> str:
        if self.completed_count and self.currently_reading_count:
            return f"{self.completed_count} finished, {self.currently_reading_count} reading"
        if self.completed_count:
            return f"{self.completed_count} finished"
        if self.currently_reading_count:
            return f"{self.currently_reading_count} reading"
        return f"{self.book_count} book" if self.book_count == 1 else f"{self.book_count} books"


@dataclass(frozen=True)
class LibraryStats:
    """Reading-status counts across every book type."""

    total_books: int = 0
    finished_books: int = 0
    currently_reading: int = 0
    want_to_read: int = 0


class LibraryStore:
    """CRUD access to saved books."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise LibraryError(f"Failed to {action}: {e}") from e

    def insert(
        self,
        record: CatalogRecord,
        classification: Classification,
        date_added: datetime | None = None,
        date_started: datetime | None = None,
        date_finished: datetime | None = None,
    ) -> int:
        """Insert a new entry and return its id."""
        book = SavedBook(
            title=record.title,
            author=record.author,
            page_count=record.page_count,
            thumbnail_url=record.thumbnail_url or "",
            book_type=classification.book_type,
            reading_status=classification.reading_status,
            series=classification.series,
            date_added=date_added or datetime.utcnow(),
            date_started=date_started,
            date_finished=date_finished,
        )
        self.db.add(book)
        self._commit(f"save '{record.title}'")
        return book.id

    def exists(self, title: str, author: str | None = None) -> bool:
        """
        Check whether an entry with this identity exists.

        Title and author are compared exactly (case-sensitive). Without an
        author, any entry with the same title matches.
        """
        query = select(SavedBook.id).where(SavedBook.title == title)
        if author:
            query = query.where(SavedBook.author == author)

        try:
            return self.db.execute(query.limit(1)).first() is not None
        except SQLAlchemyError as e:
            raise LibraryError(f"Failed to look up '{title}': {e}") from e

    def get(self, book_id: int) -> SavedBook:
        book = self.db.get(SavedBook, book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def update_status(
        self,
        book_id: int,
        status: ReadingStatus,
        timestamp: datetime | None = None,
    ) -> SavedBook:
        """
        Move an entry to a new reading status.

        Currently-reading stamps date_started, finished stamps date_finished,
        and want-to-read clears both.
        """
        book = self.get(book_id)
        when = timestamp or datetime.utcnow()

        book.reading_status = status
        if status == ReadingStatus.CURRENTLY_READING:
            book.date_started = when
        elif status == ReadingStatus.FINISHED:
            book.date_finished = when
        else:
            book.date_started = None
            book.date_finished = None

        self._commit(f"update status of book {book_id}")
        return book

    def update_series(self, book_id: int, series: str | None) -> SavedBook:
        book = self.get(book_id)
        book.series = series.strip() if series and series.strip() else None
        self._commit(f"update series of book {book_id}")
        return book

    def delete(self, book_id: int) -> None:
        book = self.get(book_id)
        self.db.delete(book)
        self._commit(f"delete book {book_id}")

    def clear(self) -> int:
        """Delete every entry. Returns the number removed."""
        count = self.db.query(SavedBook).delete()
        self._commit("clear library")
        return count

    def list_books(
        self,
        book_type: BookType | None = None,
        status: ReadingStatus | None = None,
    ) -> list[SavedBook]:
        """List entries, most recently added first."""
        q = self.db.query(SavedBook)
        if book_type is not None:
            q = q.filter(SavedBook.book_type == book_type)
        if status is not None:
            q = q.filter(SavedBook.reading_status == status)
        return q.order_by(SavedBook.date_added.desc(), SavedBook.id.desc()).all()

    def list_series(self, book_type: BookType) -> list[SeriesSummary]:
        """Summarize entries of one type grouped by series."""
        series_name = func.coalesce(
            func.nullif(SavedBook.series, ""), STANDALONE_SERIES
        ).label("series_name")
        finished = func.sum(
            case((SavedBook.reading_status == ReadingStatus.FINISHED, 1), else_=0)
        )
        reading = func.sum(
            case((SavedBook.reading_status == ReadingStatus.CURRENTLY_READING, 1), else_=0)
        )
        last_activity = func.max(
            func.coalesce(SavedBook.date_finished, SavedBook.date_started, SavedBook.date_added)
        )

        rows = (
            self.db.query(
                series_name,
                func.count(SavedBook.id),
                finished,
                reading,
                func.max(SavedBook.date_finished),
                func.max(SavedBook.thumbnail_url),
            )
            .filter(SavedBook.book_type == book_type)
            .group_by(series_name)
            .order_by(last_activity.desc())
            .all()
        )

        return [
            SeriesSummary(
                series_name=name,
                book_type=book_type,
                book_count=count,
                completed_count=completed or 0,
                currently_reading_count=current or 0,
                last_book_thumbnail=thumbnail or "",
                last_read_date=last_read,
            )
            for name, count, completed, current, last_read, thumbnail in rows
        ]

    def books_in_series(self, series_name: str, book_type: BookType) -> list[SavedBook]:
        q = self.db.query(SavedBook).filter(SavedBook.book_type == book_type)
        if series_name == STANDALONE_SERIES:
            q = q.filter(or_(SavedBook.series.is_(None), SavedBook.series == ""))
        else:
            q = q.filter(SavedBook.series == series_name)

        return q.order_by(
            SavedBook.date_finished.desc(),
            SavedBook.date_started.desc(),
            SavedBook.date_added.desc(),
        ).all()

    def stats(self) -> LibraryStats:
        """Count entries by reading status."""
        rows = (
            self.db.query(SavedBook.reading_status, func.count(SavedBook.id))
            .group_by(SavedBook.reading_status)
            .all()
        )
        counts = {status: count for status, count in rows}

        return LibraryStats(
            total_books=sum(counts.values()),
            finished_books=counts.get(ReadingStatus.FINISHED, 0),
            currently_reading=counts.get(ReadingStatus.CURRENTLY_READING, 0),
            want_to_read=counts.get(ReadingStatus.WANT_TO_READ, 0),
        )
