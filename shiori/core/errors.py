"""
Error taxonomy for catalog access and the local library.

Catalog errors propagate to the immediate caller; nothing in the pipeline
retries. During a bulk import the progress accumulated before the failure is
attached to the raised error as ``partial_progress``.
"""

from typing import Any


class ShioriError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.partial_progress: Any | None = None


class CatalogError(ShioriError):
    """Raised when an external catalog cannot be queried or understood."""


class BadURLError(CatalogError):
    """Request construction failed."""


class NetworkError(CatalogError):
    """The transport call failed before an HTTP response was received."""

    MESSAGES = {
        "timeout": "The catalog took too long to respond. Please try again.",
        "no_connection": "No internet connection. Check your network and try again.",
        "host_unreachable": "The catalog server could not be reached.",
        "transport": "A network error occurred while contacting the catalog.",
    }

    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind if kind in self.MESSAGES else "transport"
        self.detail = detail
        super().__init__(self.MESSAGES[self.kind])


class BadServerResponseError(CatalogError):
    """The catalog answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Catalog returned HTTP {status_code}")


class DecodingError(CatalogError):
    """The response body could not be decoded."""


class ParseError(CatalogError):
    """The markup could not be parsed as a document."""


class LibraryError(ShioriError):
    """A local library operation failed."""


class BookNotFoundError(LibraryError):
    """No library entry exists with the requested id."""

    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"Book {book_id} not found")
