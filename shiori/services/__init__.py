from shiori.services.book_dedup import DuplicateCheck, DuplicateResolver
from shiori.services.catalog_client import BookmeterClient, CatalogSource, OpenLibraryClient
from shiori.services.catalog_parser import (
    CatalogRecord,
    ParseMode,
    extract_page_count,
    parse_catalog_page,
)
from shiori.services.import_service import (
    BookmeterImporter,
    ImportJobRegistry,
    ImportProgress,
)
from shiori.services.library_store import Classification, LibraryStats, LibraryStore
from shiori.services.pacing import PacingPolicy
from shiori.services.pagination import PaginationCursor
from shiori.services.search_service import SearchSession

__all__ = [
    "BookmeterClient",
    "BookmeterImporter",
    "CatalogRecord",
    "CatalogSource",
    "Classification",
    "DuplicateCheck",
    "DuplicateResolver",
    "ImportJobRegistry",
    "ImportProgress",
    "LibraryStats",
    "LibraryStore",
    "OpenLibraryClient",
    "PacingPolicy",
    "PaginationCursor",
    "ParseMode",
    "SearchSession",
    "extract_page_count",
    "parse_catalog_page",
]
