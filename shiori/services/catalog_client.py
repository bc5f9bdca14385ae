"""
HTTP clients for external book catalogs.

Supports:
- Bookmeter (HTML search results and per-user "read" shelves)
- Open Library (JSON search API)

No client retries; every failure surfaces as a CatalogError subclass.
"""

from typing import Any, Protocol
from urllib.parse import quote

import httpx

from shiori.core.config import Settings, get_settings
from shiori.core.errors import (
    BadServerResponseError,
    BadURLError,
    DecodingError,
    NetworkError,
)
from shiori.core.logging import get_logger
from shiori.services.catalog_parser import CatalogRecord, ParseMode, parse_catalog_page

logger = get_logger(__name__)


class CatalogSource(Protocol):
    """Anything that can return one page of search results."""

    async def search_page(self, query: str, page: int) -> list[CatalogRecord]: ...


class CatalogHTTPClient:
    """Shared transport handling and error mapping for catalog clients."""

    def __init__(
        self,
        base_url: str,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            headers={"User-Agent": settings.HTTP_USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def _build_request(self, path: str, params: dict[str, Any] | None = None) -> httpx.Request:
        try:
            return self.client.build_request("GET", path, params=params)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
            raise BadURLError(f"Could not build request for {path}: {e}") from e

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        request = self._build_request(path, params)

        try:
            response = await self.client.send(request)
        except httpx.TimeoutException as e:
            raise NetworkError("timeout", str(e)) from e
        except httpx.ConnectError as e:
            raise NetworkError("host_unreachable", str(e)) from e
        except httpx.NetworkError as e:
            raise NetworkError("no_connection", str(e)) from e
        except httpx.UnsupportedProtocol as e:
            raise BadURLError(str(e)) from e
        except httpx.TransportError as e:
            raise NetworkError("transport", str(e)) from e
        except httpx.TooManyRedirects as e:
            raise NetworkError("transport", f"Redirect loop: {e}") from e
        except httpx.DecodingError as e:
            raise DecodingError(f"Response body could not be decoded: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError("transport", str(e)) from e

        if not response.is_success:
            logger.warning(
                f"Catalog request failed with HTTP {response.status_code}",
                extra={"extra_fields": {"url": str(request.url)}},
            )
            raise BadServerResponseError(response.status_code, str(request.url))

        return response

    @staticmethod
    def _decode_text(response: httpx.Response) -> str:
        encoding = response.charset_encoding or "utf-8"
        try:
            return response.content.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise DecodingError(f"Response is not valid {encoding} text: {e}") from e


class BookmeterClient(CatalogHTTPClient):
    """Client for bookmeter.com search and shelf pages."""

    SEARCH_PATH = "/search"

    # Fixed search parameters (partial matches, recommended order, Japanese catalog)
    SEARCH_PARAMS = {
        "author": "",
        "partial": "true",
        "sort": "recommended",
        "type": "japanese_v2",
    }

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(settings.BOOKMETER_BASE_URL, settings, transport)

    async def search(self, query: str, page: int = 1) -> str:
        """
        Fetch one page of search results as markup.

        Args:
            query: Search keyword
            page: 1-based page number

        Returns:
            Raw HTML of the results page
        """
        if not query or not query.strip():
            raise BadURLError("Search query must not be empty")
        if page < 1:
            raise BadURLError(f"Invalid page number: {page}")

        params = {**self.SEARCH_PARAMS, "keyword": query.strip(), "page": str(page)}
        response = await self._get(self.SEARCH_PATH, params=params)
        return self._decode_text(response)

    async def list_user_items(self, user_id: str, page: int = 1) -> str:
        """
        Fetch one page of a user's read shelf as markup.

        The first page is requested without a page parameter.
        """
        user_id = (user_id or "").strip()
        if not user_id:
            raise BadURLError("User id must not be empty")
        if page < 1:
            raise BadURLError(f"Invalid page number: {page}")

        path = f"/users/{quote(user_id, safe='')}/books/read"
        params = {"page": str(page)} if page > 1 else None
        response = await self._get(path, params=params)
        return self._decode_text(response)

    async def search_page(self, query: str, page: int = 1) -> list[CatalogRecord]:
        markup = await self.search(query, page)
        records = parse_catalog_page(markup, ParseMode.SEARCH_RESULTS)
        logger.info(f"Bookmeter search '{query}' page {page}: {len(records)} results")
        return records

    async def user_items_page(self, user_id: str, page: int = 1) -> list[CatalogRecord]:
        markup = await self.list_user_items(user_id, page)
        return parse_catalog_page(markup, ParseMode.USER_SHELF)


class OpenLibraryClient(CatalogHTTPClient):
    """Client for the Open Library search API."""

    SEARCH_PATH = "/search.json"
    SEARCH_FIELDS = (
        "key,title,author_name,cover_i,first_publish_year,"
        "number_of_pages_median,edition_count"
    )

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(settings.OPEN_LIBRARY_BASE_URL, settings, transport)
        self.covers_url = settings.OPEN_LIBRARY_COVERS_URL.rstrip("/")
        self.page_size = settings.OPEN_LIBRARY_PAGE_SIZE

    async def search_page(self, query: str, page: int = 1) -> list[CatalogRecord]:
        """Search by free text. Open Library pages by offset, not page number."""
        if not query or not query.strip():
            raise BadURLError("Search query must not be empty")
        if page < 1:
            raise BadURLError(f"Invalid page number: {page}")

        params = {
            "q": query.strip(),
            "fields": self.SEARCH_FIELDS,
            "limit": self.page_size,
            "offset": (page - 1) * self.page_size,
        }
        response = await self._get(self.SEARCH_PATH, params=params)

        try:
            data = response.json()
        except ValueError as e:
            raise DecodingError(f"Open Library returned invalid JSON: {e}") from e

        docs = data.get("docs", []) if isinstance(data, dict) else []
        records = [record for doc in docs if (record := self._parse_doc(doc))]
        logger.info(f"Open Library search '{query}' page {page}: {len(records)} results")
        return records

    def _parse_doc(self, doc: dict) -> CatalogRecord | None:
        title = (doc.get("title") or "").strip()
        if not title:
            return None

        cover_url = ""
        cover_i = doc.get("cover_i")
        if cover_i:
            cover_url = f"{self.covers_url}/b/id/{cover_i}-M.jpg"

        authors = doc.get("author_name") or []
        author = authors[0].strip() if authors and authors[0] else None

        page_count = doc.get("number_of_pages_median")
        if not isinstance(page_count, int) or page_count <= 0:
            page_count = None

        return CatalogRecord(
            title=title,
            thumbnail_url=cover_url,
            author=author or None,
            page_count=page_count,
        )
