from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from shiori.api.deps import get_store
from shiori.core.errors import BookNotFoundError, LibraryError
from shiori.models.book import BookType, ReadingStatus
from shiori.schemas.library import (
    LibraryExport,
    LibraryImportResult,
    LibraryStatsResponse,
    SavedBookCreate,
    SavedBookResponse,
    SeriesSummaryResponse,
    SeriesUpdate,
    StatusUpdate,
)
from shiori.services import export_service
from shiori.services.catalog_parser import CatalogRecord
from shiori.services.library_store import Classification, LibraryStore

router = APIRouter()

# Maximum size for library export uploads (5MB)
MAX_IMPORT_SIZE = 5 * 1024 * 1024


@router.get("/books", response_model=list[SavedBookResponse])
async def list_books(
    book_type: BookType | None = Query(None),
    status: ReadingStatus | None = Query(None),
    store: LibraryStore = Depends(get_store),
):
    """List saved books, most recently added first."""
    return store.list_books(book_type=book_type, status=status)


@router.post("/books", response_model=SavedBookResponse, status_code=201)
async def add_book(
    body: SavedBookCreate,
    store: LibraryStore = Depends(get_store),
):
    """Add a book to the library as want-to-read."""
    title = body.title.strip()
    author = body.author.strip() if body.author else None
    if not title:
        raise HTTPException(status_code=400, detail="Title must not be empty")

    if store.exists(title, author):
        raise HTTPException(status_code=409, detail="Book is already in your library")

    record = CatalogRecord(
        title=title,
        thumbnail_url=body.thumbnail_url,
        author=author or None,
        page_count=body.page_count,
    )
    try:
        book_id = store.insert(record, Classification(body.book_type, series=body.series))
    except LibraryError as e:
        raise HTTPException(status_code=500, detail=e.message) from e
    return store.get(book_id)


@router.patch("/books/{book_id}/status", response_model=SavedBookResponse)
async def update_status(
    book_id: int,
    body: StatusUpdate,
    store: LibraryStore = Depends(get_store),
):
    """Move a book to a new reading status."""
    try:
        return store.update_status(book_id, body.status, body.date)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LibraryError as e:
        raise HTTPException(status_code=500, detail=e.message) from e


@router.patch("/books/{book_id}/series", response_model=SavedBookResponse)
async def update_series(
    book_id: int,
    body: SeriesUpdate,
    store: LibraryStore = Depends(get_store),
):
    """Assign a book to a series, or clear its series."""
    try:
        return store.update_series(book_id, body.series)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LibraryError as e:
        raise HTTPException(status_code=500, detail=e.message) from e


@router.delete("/books/{book_id}", status_code=204)
async def delete_book(
    book_id: int,
    store: LibraryStore = Depends(get_store),
):
    """Remove a book from the library."""
    try:
        store.delete(book_id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LibraryError as e:
        raise HTTPException(status_code=500, detail=e.message) from e


@router.get("/series", response_model=list[SeriesSummaryResponse])
async def list_series(
    book_type: BookType = Query(...),
    store: LibraryStore = Depends(get_store),
):
    """Summarize books of one type by series."""
    return [SeriesSummaryResponse.model_validate(s) for s in store.list_series(book_type)]


@router.get("/series/books", response_model=list[SavedBookResponse])
async def list_series_books(
    name: str = Query(..., min_length=1),
    book_type: BookType = Query(...),
    store: LibraryStore = Depends(get_store),
):
    """List the books in one series (or "Standalone Books")."""
    return store.books_in_series(name, book_type)


@router.get("/stats", response_model=LibraryStatsResponse)
async def library_stats(store: LibraryStore = Depends(get_store)):
    """Book counts by reading status across the whole library."""
    return LibraryStatsResponse.model_validate(store.stats())


@router.get("/export", response_model=LibraryExport)
async def export_library(store: LibraryStore = Depends(get_store)):
    """Export the whole library as a JSON document."""
    return export_service.export_library(store)


@router.post("/import", response_model=LibraryImportResult)
async def import_library(
    file: UploadFile = File(..., description="Library export JSON"),
    replace: bool = Query(False, description="Clear the library before importing"),
    store: LibraryStore = Depends(get_store),
):
    """Restore books from a previous export, skipping ones already present."""
    content = await file.read()
    if len(content) > MAX_IMPORT_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_IMPORT_SIZE // (1024 * 1024)}MB",
        )

    try:
        document = export_service.parse_library_export(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        return export_service.import_library(store, document, replace_existing=replace)
    except LibraryError as e:
        raise HTTPException(status_code=500, detail=e.message) from e
