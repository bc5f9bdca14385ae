from enum import Enum

from fastapi import APIRouter, Depends, Query

from shiori.api.deps import (
    catalog_http_error,
    get_bookmeter_client,
    get_open_library_client,
    get_store,
)
from shiori.core.errors import CatalogError
from shiori.schemas.catalog import CatalogRecordResponse, CatalogSearchResponse
from shiori.services.book_dedup import DuplicateResolver
from shiori.services.catalog_client import BookmeterClient, OpenLibraryClient
from shiori.services.library_store import LibraryStore

router = APIRouter()


class CatalogName(str, Enum):
    BOOKMETER = "bookmeter"
    OPEN_LIBRARY = "openlibrary"


@router.get("", response_model=CatalogSearchResponse)
async def search_catalog(
    q: str = Query(..., min_length=1, description="Search query"),
    page: int = Query(1, ge=1),
    source: CatalogName = Query(CatalogName.BOOKMETER),
    bookmeter: BookmeterClient = Depends(get_bookmeter_client),
    open_library: OpenLibraryClient = Depends(get_open_library_client),
    store: LibraryStore = Depends(get_store),
):
    """
    Fetch one page of catalog search results.

    Each result is flagged when a book with the same title and author is
    already in the library.
    """
    client = bookmeter if source == CatalogName.BOOKMETER else open_library
    try:
        records = await client.search_page(q, page)
    except CatalogError as e:
        raise catalog_http_error(e) from e

    resolver = DuplicateResolver(store)
    return CatalogSearchResponse(
        query=q,
        source=source.value,
        page=page,
        results=[
            CatalogRecordResponse(
                title=record.title,
                thumbnail_url=record.thumbnail_url,
                author=record.author,
                page_count=record.page_count,
                in_library=resolver.exists(record.title, record.author),
            )
            for record in records
        ],
        has_more=bool(records),
    )
