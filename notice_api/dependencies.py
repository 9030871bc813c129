from functools import lru_cache

from fastapi import Form, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from notice_api.config import settings
from notice_api.schemas import NoticeCreate, NoticeUpdate
from notice_api.services.file_storage_service import FileStorageService


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination /
    sorting query parameters.

    Usage in a router::

        @router.get("/notices")
        async def list_notices(pagination: PaginationParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``
        regardless of the value supplied by the caller.
    sort_by:
        ORM column name to sort by.  The service layer maps unknown names
        back to ``created_at``.
    sort_order:
        ``"asc"`` or ``"desc"`` (enforced by the regex pattern).
    """

    def __init__(
        self,
        page: int = Query(
            1,
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query(
            "created_at",
            description="Column name to sort results by.",
        ),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


@lru_cache(maxsize=1)
def get_file_storage() -> FileStorageService:
    """Process-wide storage rooted at ``settings.FILE_STORAGE_LOCATION``."""
    return FileStorageService(settings.FILE_STORAGE_LOCATION)


def _parse_part(model, raw: str):
    # The JSON metadata arrives as a form field, so FastAPI cannot validate
    # it for us; re-raise as a request error so the 400 handler applies.
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("notice", *err["loc"])} for err in exc.errors(include_url=False)]
        ) from exc


def notice_create_part(notice: str = Form(..., description="NoticeCreate as JSON")) -> NoticeCreate:
    return _parse_part(NoticeCreate, notice)


def notice_update_part(notice: str = Form(..., description="NoticeUpdate as JSON")) -> NoticeUpdate:
    return _parse_part(NoticeUpdate, notice)
