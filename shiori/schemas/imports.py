from datetime import datetime

from pydantic import BaseModel, Field


class BookmeterImportRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64, description="Bookmeter user id")


class ImportProgressResponse(BaseModel):
    current_page: int = 0
    total_records_seen: int = 0
    new_records_added: int = 0
    duplicates_skipped: int = 0
    cancelled: bool = False


class ImportStatus(BaseModel):
    import_id: str
    user_id: str
    status: str  # pending, processing, completed, cancelled, failed
    message: str | None = None
    progress: ImportProgressResponse
    error: str | None = None
    started_at: datetime
    completed_at: datetime | None = None
