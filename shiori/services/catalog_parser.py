"""
Bookmeter HTML parser.

Turns one catalog page (search results or a user's shelf listing) into a list
of CatalogRecord objects. Selection is tiered at two levels:

1. Container selector sets are tried in order for the page type; the first set
   that matches at least one element wins and later sets are ignored.
2. Inside each container, field strategies are tried in order; the first one
   that yields a title produces the record. Containers without a title under
   every strategy are dropped.
"""

import enum
import re
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from shiori.core.errors import ParseError
from shiori.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CatalogRecord:
    """A book entry extracted from one catalog page."""

    title: str
    thumbnail_url: str = ""
    author: str | None = None
    page_count: int | None = None


class ParseMode(str, enum.Enum):
    SEARCH_RESULTS = "search_results"
    USER_SHELF = "user_shelf"


@dataclass(frozen=True)
class ContainerSelectorSet:
    name: str
    selector: str


# Search result list items
SEARCH_CONTAINERS = ContainerSelectorSet("search", "li.group__book")

# Shelf pages under /users/{id}/books/read
SHELF_CONTAINERS = ContainerSelectorSet(
    "shelf", "ul.book-list__group li.group__book, div.book-list__item, li.book-list__item"
)

# Last resort for redesigned pages
GENERIC_CONTAINERS = ContainerSelectorSet("generic", "li.book, div.book, article.book")

CONTAINER_TIERS: dict[ParseMode, tuple[ContainerSelectorSet, ...]] = {
    ParseMode.SEARCH_RESULTS: (SEARCH_CONTAINERS, SHELF_CONTAINERS, GENERIC_CONTAINERS),
    ParseMode.USER_SHELF: (SHELF_CONTAINERS, SEARCH_CONTAINERS, GENERIC_CONTAINERS),
}


def extract_page_count(text: str | None) -> int | None:
    """
    Return the first positive integer found in a page-count text.

    The text is split on every run of non-digit characters, so
    "288ページ" -> 288 and "no pages here" -> None. Zero is not a page count.
    """
    if not text:
        return None

    for token in re.split(r"\D+", text):
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            continue
        if value > 0:
            return value

    return None


def _clean(text: str | None) -> str:
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def _first_text(element: Tag, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        found = element.select_one(selector)
        if found is not None:
            text = _clean(found.get_text(" "))
            if text:
                return text
    return ""


def _image_url(img: Tag | None) -> str:
    if img is None:
        return ""
    for attr in ("src", "data-src", "data-original"):
        value = img.get(attr)
        if value:
            value = str(value).strip()
            if value.startswith("//"):
                value = "https:" + value
            return value
    return ""


def extract_detail_fields(element: Tag) -> CatalogRecord | None:
    """Narrow selectors matching Bookmeter's book__thumbnail / book__detail markup."""
    title = _first_text(element, ("div.book__detail div.detail__title a",))
    if not title:
        return None

    author = _first_text(element, ("div.book__detail ul.detail__authors li",))
    page_text = _first_text(element, ("div.book__detail div.detail__page",))

    return CatalogRecord(
        title=title,
        thumbnail_url=_image_url(element.select_one("div.book__thumbnail img")),
        author=author or None,
        page_count=extract_page_count(page_text),
    )


def extract_loose_fields(element: Tag) -> CatalogRecord | None:
    """Generic headings and title/author class names."""
    title = _first_text(
        element,
        (
            ".detail__title",
            "h1",
            "h2",
            "h3",
            "h4",
            ".title",
            "[class*='title']",
        ),
    )
    if not title:
        return None

    author = _first_text(
        element,
        (
            ".detail__authors li",
            ".detail__authors",
            ".author",
            "[class*='author']",
        ),
    )
    page_text = _first_text(element, (".detail__page", "[class*='page']"))

    return CatalogRecord(
        title=title,
        thumbnail_url=_image_url(element.select_one("img")),
        author=author or None,
        page_count=extract_page_count(page_text),
    )


FieldStrategy = Callable[[Tag], CatalogRecord | None]

FIELD_STRATEGIES: tuple[FieldStrategy, ...] = (extract_detail_fields, extract_loose_fields)


def parse_document(markup: str) -> BeautifulSoup:
    """Parse markup into a document, raising ParseError if there is none."""
    if not isinstance(markup, str):
        raise ParseError(f"Expected markup text, got {type(markup).__name__}")
    if not markup.strip():
        raise ParseError("Empty document")

    try:
        soup = BeautifulSoup(markup, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseError(f"Markup could not be parsed: {e}") from e

    if soup.find(True) is None:
        raise ParseError("Markup contains no elements")

    return soup


def select_containers(soup: BeautifulSoup, mode: ParseMode) -> list[Tag]:
    """Return the containers of the first selector set that matches anything."""
    for selector_set in CONTAINER_TIERS[mode]:
        containers = soup.select(selector_set.selector)
        if containers:
            logger.debug(
                f"Matched {len(containers)} containers with '{selector_set.name}' selectors"
            )
            return containers
    return []


def extract_record(
    element: Tag,
    strategies: tuple[FieldStrategy, ...] = FIELD_STRATEGIES,
) -> CatalogRecord | None:
    """Run field strategies in order and return the first record with a title."""
    for strategy in strategies:
        record = strategy(element)
        if record is not None:
            return record
    return None


def parse_catalog_page(markup: str, mode: ParseMode) -> list[CatalogRecord]:
    """
    Parse one catalog page into records, in document order.

    Raises:
        ParseError: if the markup is not a parseable document.
    """
    soup = parse_document(markup)

    records = []
    dropped = 0
    for element in select_containers(soup, mode):
        record = extract_record(element)
        if record is None:
            dropped += 1
            continue
        records.append(record)

    if dropped:
        logger.debug(f"Dropped {dropped} containers without a title")

    return records
