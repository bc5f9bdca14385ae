from datetime import datetime

from pydantic import BaseModel, Field

from shiori.models.book import BookType, ReadingStatus


class SavedBookResponse(BaseModel):
    id: int
    title: str
    author: str | None
    page_count: int | None
    thumbnail_url: str
    book_type: BookType
    reading_status: ReadingStatus
    series: str | None
    date_added: datetime
    date_started: datetime | None
    date_finished: datetime | None
    reading_duration_days: int | None = None

    class Config:
        from_attributes = True


class SavedBookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    author: str | None = Field(None, max_length=255)
    page_count: int | None = Field(None, gt=0)
    thumbnail_url: str = ""
    book_type: BookType
    series: str | None = Field(None, max_length=255)


class StatusUpdate(BaseModel):
    status: ReadingStatus
    date: datetime | None = None  # Defaults to now


class SeriesUpdate(BaseModel):
    series: str | None = Field(None, max_length=255)


class SeriesSummaryResponse(BaseModel):
    series_name: str
    book_type: BookType
    book_count: int
    completed_count: int
    currently_reading_count: int
    last_book_thumbnail: str
    last_read_date: datetime | None
    display_status: str

    class Config:
        from_attributes = True


class ExportedBook(BaseModel):
    title: str = Field(..., min_length=1)
    author: str | None = None
    page_count: int | None = None
    thumbnail_url: str = ""
    book_type: BookType
    reading_status: ReadingStatus = ReadingStatus.WANT_TO_READ
    series: str | None = None
    date_added: datetime | None = None
    date_started: datetime | None = None
    date_finished: datetime | None = None

    class Config:
        from_attributes = True


class ExportMetadata(BaseModel):
    exported_at: datetime
    app_version: str
    book_count: int


class LibraryExport(BaseModel):
    metadata: ExportMetadata
    books: list[ExportedBook]


class LibraryImportResult(BaseModel):
    imported: int = 0
    skipped: int = 0  # Already in the library
    errors: list[str] = []

    @property
    def is_successful(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> str:
        return f"{self.imported} imported, {self.skipped} skipped, {len(self.errors)} errors"


class LibraryStatsResponse(BaseModel):
    total_books: int
    finished_books: int
    currently_reading: int
    want_to_read: int

    class Config:
        from_attributes = True
