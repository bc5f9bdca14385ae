from shiori.schemas.catalog import CatalogRecordResponse, CatalogSearchResponse
from shiori.schemas.imports import BookmeterImportRequest, ImportProgressResponse, ImportStatus
from shiori.schemas.library import (
    ExportedBook,
    LibraryExport,
    LibraryImportResult,
    LibraryStatsResponse,
    SavedBookCreate,
    SavedBookResponse,
    SeriesSummaryResponse,
    SeriesUpdate,
    StatusUpdate,
)

__all__ = [
    "BookmeterImportRequest",
    "CatalogRecordResponse",
    "CatalogSearchResponse",
    "ExportedBook",
    "ImportProgressResponse",
    "ImportStatus",
    "LibraryExport",
    "LibraryImportResult",
    "LibraryStatsResponse",
    "SavedBookCreate",
    "SavedBookResponse",
    "SeriesSummaryResponse",
    "SeriesUpdate",
    "StatusUpdate",
]
