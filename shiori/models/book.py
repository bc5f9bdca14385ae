import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shiori.core.database import Base


class BookType(str, enum.Enum):
    ENGLISH = "English"
    JAPANESE = "Japanese"
    MANGA = "Manga"


class ReadingStatus(str, enum.Enum):
    WANT_TO_READ = "Want to Read"
    CURRENTLY_READING = "Currently Reading"
    FINISHED = "Finished"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class SavedBook(Base):
    """A book in the user's local library."""

    __tablename__ = "saved_books"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identity for duplicate detection is (title, author)
    title: Mapped[str] = mapped_column(String(500), index=True)
    author: Mapped[str | None] = mapped_column(String(255), index=True)

    page_count: Mapped[int | None] = mapped_column(Integer)
    thumbnail_url: Mapped[str] = mapped_column(String(1000), default="")

    book_type: Mapped[BookType] = mapped_column(
        Enum(BookType, values_callable=_enum_values, native_enum=False, length=20),
        index=True,
    )
    reading_status: Mapped[ReadingStatus] = mapped_column(
        Enum(ReadingStatus, values_callable=_enum_values, native_enum=False, length=20),
        default=ReadingStatus.WANT_TO_READ,
        index=True,
    )
    series: Mapped[str | None] = mapped_column(String(255), index=True)

    # Timestamps
    date_added: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    date_started: Mapped[datetime | None] = mapped_column(DateTime)
    date_finished: Mapped[datetime | None] = mapped_column(DateTime)

    @property
    def reading_duration_days(self) -> int | None:
        if not self.date_started or not self.date_finished:
            return None
        return (self.date_finished - self.date_started).days
