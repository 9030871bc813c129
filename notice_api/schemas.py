from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Attachment ---

class AttachmentResponse(BaseModel):
    id: int
    original_file_name: str
    stored_file_name: str
    file_path: str
    model_config = ConfigDict(from_attributes=True)


# --- Notice ---

class NoticePeriod(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def _check_period(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class NoticeCreate(NoticePeriod):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    author: str | None = Field(None, max_length=100)


class NoticeUpdate(NoticePeriod):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime


class NoticeSearch(BaseModel):
    title: str | None = None
    content: str | None = None
    author: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class NoticeResponse(BaseModel):
    id: int
    title: str
    content: str
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime
    view_count: int
    author: str | None
    attachments: list[AttachmentResponse] = []
    model_config = ConfigDict(from_attributes=True)


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # NoticeResponse dicts
    total: int
    page: int
    page_size: int
    pages: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_notices: int
    active_notices: int
    total_attachments: int
    active_attachments: int
    cache_info: dict = {}
