"""Tests for library export and restore."""

import json

import pytest

from shiori.models.book import BookType, ReadingStatus
from shiori.services.export_service import (
    export_library,
    import_library,
    parse_library_export,
)


class TestExport:
    def test_export_contains_every_book(self, store, add_book):
        add_book("A", "X", series="S")
        add_book("B", book_type=BookType.ENGLISH)

        document = export_library(store)

        assert document.metadata.book_count == 2
        assert {b.title for b in document.books} == {"A", "B"}

    def test_export_round_trips_through_json(self, store, add_book):
        add_book("A", "X")
        content = export_library(store).model_dump_json()

        document = parse_library_export(content)

        assert document.books[0].author == "X"
        assert document.books[0].book_type == BookType.MANGA


class TestImport:
    def _document(self, *books):
        return parse_library_export(json.dumps({
            "metadata": {
                "exported_at": "2024-05-01T00:00:00",
                "app_version": "1.0.0",
                "book_count": len(books),
            },
            "books": list(books),
        }))

    def test_import_restores_status_and_dates(self, store):
        document = self._document({
            "title": "A",
            "author": "X",
            "book_type": "Manga",
            "reading_status": "Finished",
            "date_finished": "2024-04-30T10:00:00",
        })

        result = import_library(store, document)

        assert result.imported == 1
        [book] = store.list_books()
        assert book.reading_status == ReadingStatus.FINISHED
        assert book.date_finished.year == 2024

    def test_import_skips_books_already_present(self, store, add_book):
        add_book("A", "X")
        document = self._document(
            {"title": "A", "author": "X", "book_type": "Manga"},
            {"title": "B", "book_type": "Manga"},
        )

        result = import_library(store, document)

        assert result.imported == 1
        assert result.skipped == 1
        assert result.is_successful

    def test_replace_clears_library_first(self, store, add_book):
        add_book("Old")
        document = self._document({"title": "New", "book_type": "English"})

        import_library(store, document, replace_existing=True)

        assert [b.title for b in store.list_books()] == ["New"]

    def test_invalid_document(self):
        with pytest.raises(ValueError):
            parse_library_export('{"books": "nope"}')
        with pytest.raises(ValueError):
            parse_library_export("not json")
