from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from shiori.core.database import get_db
from shiori.core.errors import (
    BadURLError,
    CatalogError,
    NetworkError,
)
from shiori.services.catalog_client import BookmeterClient, OpenLibraryClient
from shiori.services.import_service import ImportJobRegistry
from shiori.services.library_store import LibraryStore
from shiori.services.pacing import PacingPolicy


def get_store(db: Session = Depends(get_db)) -> LibraryStore:
    return LibraryStore(db)


def get_bookmeter_client(request: Request) -> BookmeterClient:
    return request.app.state.bookmeter


def get_open_library_client(request: Request) -> OpenLibraryClient:
    return request.app.state.open_library


def get_import_jobs(request: Request) -> ImportJobRegistry:
    return request.app.state.import_jobs


def get_import_pacing(request: Request) -> PacingPolicy:
    """Each run gets its own pacing state."""
    return PacingPolicy(request.app.state.settings.IMPORT_PAGE_INTERVAL_SECONDS)


def catalog_http_error(error: CatalogError) -> HTTPException:
    """Map a catalog failure to an HTTP error with a user-facing message."""
    if isinstance(error, BadURLError):
        status_code = 400
    elif isinstance(error, NetworkError):
        status_code = 504 if error.kind == "timeout" else 503
    else:
        status_code = 502
    return HTTPException(status_code=status_code, detail=error.message)
