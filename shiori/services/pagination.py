"""
Page cursor shared by incremental search loading and bulk imports.

Both consumers follow the same rule: fetch page N, and stop as soon as a page
comes back with zero records. The cursor does no I/O; whether a fetch is
already running is tracked by the caller.
"""

from dataclasses import dataclass


@dataclass
class PaginationCursor:
    """Tracks the next page to fetch for one search or import session."""

    target: str
    page: int = 1
    has_more: bool = True

    def reset(self) -> None:
        self.page = 1
        self.has_more = True

    def advance(self, record_count: int) -> None:
        """Record the size of the page just fetched."""
        if record_count == 0:
            self.has_more = False
            return
        self.page += 1

    def should_fetch_next(self, in_flight: bool = False) -> bool:
        return self.has_more and not in_flight
