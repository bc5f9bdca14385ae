"""
Duplicate detection against the local library.

A candidate is a duplicate when an entry with the same (title, author)
identity already exists. Matching is exact and case-sensitive; when the
candidate has no author, the title alone decides.
"""

from dataclasses import dataclass

from shiori.services.catalog_parser import CatalogRecord
from shiori.services.library_store import LibraryStore


@dataclass(frozen=True)
class DuplicateCheck:
    """Result of checking one candidate record."""

    record: CatalogRecord
    is_duplicate: bool
    match_method: str  # "title_author", "title", or "none"


class DuplicateResolver:
    """Read-only existence probe backed by the library store."""

    def __init__(self, store: LibraryStore):
        self.store = store

    def exists(self, title: str, author: str | None = None) -> bool:
        return self.store.exists(title, author or None)

    def check(self, record: CatalogRecord) -> DuplicateCheck:
        """Check a candidate record, reporting which rule matched."""
        is_duplicate = self.exists(record.title, record.author)
        if not is_duplicate:
            method = "none"
        elif record.author:
            method = "title_author"
        else:
            method = "title"
        return DuplicateCheck(record=record, is_duplicate=is_duplicate, match_method=method)
