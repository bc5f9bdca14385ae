"""
Interactive catalog search with incremental page loading.
"""

from shiori.core.logging import get_logger
from shiori.services.catalog_client import CatalogSource
from shiori.services.catalog_parser import CatalogRecord
from shiori.services.pagination import PaginationCursor

logger = get_logger(__name__)


class SearchSession:
    """
    One search query and the results loaded for it so far.

    Only one page load runs at a time; calls made while a load is in flight,
    or after an empty page, return an empty list without touching the network.
    """

    def __init__(self, source: CatalogSource, query: str):
        self.source = source
        self.query = query.strip()
        self.cursor = PaginationCursor(target=self.query)
        self.results: list[CatalogRecord] = []
        self.in_flight = False

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    async def load_next(self) -> list[CatalogRecord]:
        """Load the next page of results and append it to ``results``."""
        if not self.cursor.should_fetch_next(self.in_flight):
            return []

        self.in_flight = True
        try:
            records = await self.source.search_page(self.query, self.cursor.page)
        finally:
            self.in_flight = False

        self.cursor.advance(len(records))
        self.results.extend(records)
        if not records:
            logger.debug(f"No more results for '{self.query}'")
        return records

    def reset(self) -> None:
        self.cursor.reset()
        self.results = []
        self.in_flight = False
