from datetime import datetime

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from notice_api.config import settings
from notice_api.database import get_db
from notice_api.dependencies import (
    PaginationParams,
    get_file_storage,
    notice_create_part,
    notice_update_part,
)
from notice_api.schemas import NoticeCreate, NoticeResponse, NoticeSearch, NoticeUpdate, PaginatedResponse
from notice_api.services import notice_service
from notice_api.services.file_storage_service import FileStorageService

router = APIRouter(prefix="/api/v1/notices", tags=["notices"])


@router.post("", status_code=201, response_model=NoticeResponse)
async def create_notice(
    data: NoticeCreate = Depends(notice_create_part),
    files: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    return await notice_service.create_notice(db, data, files or [], storage)


@router.get("", response_model=PaginatedResponse)
async def list_notices(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await notice_service.get_notices(
        db, pagination.page, pagination.page_size, pagination.sort_by, pagination.sort_order
    )


# Declared before "/{notice_id}" so "search" is not taken for an id.
@router.get("/search", response_model=PaginatedResponse)
async def search_notices(
    title: str | None = Query(None),
    content: str | None = Query(None),
    author: str | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    search = NoticeSearch(
        title=title, content=content, author=author, start_date=start_date, end_date=end_date
    )
    return await notice_service.search_notices(
        db, search, page, min(page_size, settings.MAX_PAGE_SIZE)
    )


@router.get("/{notice_id}", response_model=NoticeResponse)
async def get_notice(notice_id: int, db: AsyncSession = Depends(get_db)):
    return await notice_service.get_notice(db, notice_id)


@router.put("/{notice_id}", response_model=NoticeResponse)
async def update_notice(
    notice_id: int,
    data: NoticeUpdate = Depends(notice_update_part),
    files: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    return await notice_service.update_notice(db, notice_id, data, files or [], storage)


@router.delete("/{notice_id}", status_code=204)
async def delete_notice(
    notice_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    await notice_service.delete_notice(db, notice_id, storage)
    return Response(status_code=204)
