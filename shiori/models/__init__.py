from shiori.models.book import BookType, ReadingStatus, SavedBook

__all__ = [
    "BookType",
    "ReadingStatus",
    "SavedBook",
]
