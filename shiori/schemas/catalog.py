from pydantic import BaseModel


class CatalogRecordResponse(BaseModel):
    title: str
    thumbnail_url: str
    author: str | None
    page_count: int | None
    in_library: bool = False


class CatalogSearchResponse(BaseModel):
    query: str
    source: str
    page: int
    results: list[CatalogRecordResponse]
    has_more: bool
