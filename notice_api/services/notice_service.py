"""
Notice service — business logic for the Notice aggregate.

Design notes
------------
- Every public function is wrapped in ``@transactional``; read-only ones
  are routed to the replica, everything else to the master.
- Detail and list reads go through the cache-aside pattern (Redis →
  fallback to DB).  Any write drops every ``notices:*`` key: invalidation
  is wholesale, not per entry.
- Soft-deleted notices are filtered out of every query, so they behave
  exactly like missing ones (``NoticeNotFoundError``).
- Attachments are eager-loaded with ``selectinload``; only live
  (non-deleted) attachments are serialised.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
import math
from datetime import datetime

from fastapi import UploadFile
from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from notice_api.cache import cache, notice_detail_key, notice_list_key
from notice_api.config import settings
from notice_api.exceptions import NoticeNotFoundError, NoticeValidationError
from notice_api.models import Attachment, Notice
from notice_api.routing import transactional
from notice_api.schemas import NoticeCreate, NoticeSearch, NoticeUpdate, PaginatedResponse
from notice_api.services.file_storage_service import (
    FileStorageService,
    attachment_to_dict,
    validate_file_names,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"created_at", "start_date", "end_date", "view_count", "title"}
)

# Sentinels for unset search filters.
_MIN_DATE = datetime.min
_MAX_DATE = datetime.max


def _resolve_sort_column(sort_by: str):
    """
    Return the SQLAlchemy column expression for *sort_by*.

    Falls back to ``Notice.created_at`` for any unrecognised column name.
    """
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Notice, sort_by)
    return Notice.created_at


def _validate_required(title: str | None, content: str | None) -> None:
    missing = [name for name, value in (("title", title), ("content", content))
               if value is None or not value.strip()]
    if missing:
        raise NoticeValidationError(f"Required field(s) missing: {', '.join(missing)}")


def _active_notices():
    return select(Notice).where(Notice.is_deleted.is_(False))


async def _get_active_notice(db: AsyncSession, notice_id: int) -> Notice:
    q = (
        _active_notices()
        .where(Notice.id == notice_id)
        .options(selectinload(Notice.attachments))
    )
    result = await db.execute(q)
    notice = result.scalar_one_or_none()
    if notice is None:
        raise NoticeNotFoundError(f"Notice not found with id {notice_id}")
    return notice


async def _paginate(db: AsyncSession, q, page: int, page_size: int, order_by) -> PaginatedResponse:
    count_q = select(func.count()).select_from(q.subquery())
    total: int = (await db.execute(count_q)).scalar_one()

    rows_q = (
        q.options(selectinload(Notice.attachments))
        .order_by(*order_by)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    notices = (await db.execute(rows_q)).scalars().all()
    return PaginatedResponse(
        items=[notice_to_dict(n) for n in notices],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def notice_to_dict(notice: Notice) -> dict:
    """Serialise a Notice ORM instance with its live attachments."""
    return {
        "id": notice.id,
        "title": notice.title,
        "content": notice.content,
        "start_date": _iso(notice.start_date),
        "end_date": _iso(notice.end_date),
        "created_at": _iso(notice.created_at),
        "view_count": notice.view_count,
        "author": notice.author,
        "attachments": [attachment_to_dict(a) for a in notice.active_attachments],
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

@transactional
async def create_notice(
    db: AsyncSession,
    data: NoticeCreate,
    files: list[UploadFile],
    storage: FileStorageService,
) -> dict:
    """
    Persist a new notice, then store its attachments in the same
    transaction and return the serialised notice.
    """
    _validate_required(data.title, data.content)
    validate_file_names(files)

    notice = Notice(
        title=data.title,
        content=data.content,
        start_date=data.start_date,
        end_date=data.end_date,
        author=data.author,
        view_count=0,
        is_deleted=False,
        attachments=[],
    )
    db.add(notice)
    await db.flush()

    await storage.process_files(db, files, notice)

    await cache.invalidate_notices()
    logger.info("Created notice %s with %d attachment(s)", notice.id, len(notice.attachments))
    return notice_to_dict(notice)


@transactional(read_only=True)
async def get_notice(db: AsyncSession, notice_id: int) -> dict:
    """Return the detail dict of a live notice, or raise ``NoticeNotFoundError``."""
    cache_key = notice_detail_key(notice_id)
    cached = await cache.get(cache_key)
    if cached:
        return cached

    notice = await _get_active_notice(db, notice_id)
    data = notice_to_dict(notice)
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


@transactional(read_only=True)
async def get_notices(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """
    Return a page of live notices, using Redis as a cache layer.

    Two SQL statements are issued on a cache miss (COUNT and the page
    SELECT) plus one ``selectinload`` for the attachments.
    """
    cache_key = notice_list_key(page, page_size, sort_by, sort_order)
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    sort_col = _resolve_sort_column(sort_by)
    direction = desc if sort_order == "desc" else asc
    response = await _paginate(
        db, _active_notices(), page, page_size, (direction(sort_col), direction(Notice.id))
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


@transactional(read_only=True)
async def search_notices(
    db: AsyncSession,
    search: NoticeSearch,
    page: int = 1,
    page_size: int = 10,
) -> PaginatedResponse:
    """
    Substring search over title, content and author, restricted to
    notices created between ``start_date`` and ``end_date``.

    Unset text filters match everything (empty pattern) and unset dates
    default to the widest possible range.
    """
    title = search.title or ""
    content = search.content or ""
    author = search.author or ""
    start_date = search.start_date or _MIN_DATE
    end_date = search.end_date or _MAX_DATE

    q = _active_notices().where(
        Notice.title.contains(title, autoescape=True),
        Notice.content.contains(content, autoescape=True),
        func.coalesce(Notice.author, "").contains(author, autoescape=True),
        Notice.created_at.between(start_date, end_date),
    )
    return await _paginate(db, q, page, page_size, (desc(Notice.created_at), desc(Notice.id)))


@transactional
async def update_notice(
    db: AsyncSession,
    notice_id: int,
    data: NoticeUpdate,
    files: list[UploadFile],
    storage: FileStorageService,
) -> dict:
    """
    Replace the fields of a live notice and swap its attachment set for
    *files*: current attachments are soft-deleted and their bytes removed
    before the new uploads are stored.
    """
    _validate_required(data.title, data.content)
    # Old attachments are removed from disk below; refuse bad names first.
    validate_file_names(files)
    notice = await _get_active_notice(db, notice_id)

    notice.title = data.title
    notice.content = data.content
    notice.start_date = data.start_date
    notice.end_date = data.end_date

    await storage.delete_files_by_notice(db, notice)
    await storage.process_files(db, files, notice)
    await db.flush()

    await cache.invalidate_notices()
    logger.info("Updated notice %s, %d attachment(s) now live", notice.id, len(notice.active_attachments))
    return notice_to_dict(notice)


@transactional
async def delete_notice(db: AsyncSession, notice_id: int, storage: FileStorageService) -> None:
    """Soft-delete a live notice together with all of its attachments."""
    notice = await _get_active_notice(db, notice_id)

    await storage.delete_files_by_notice(db, notice)
    notice.soft_delete()
    await db.flush()

    await cache.invalidate_notices()
    logger.info("Deleted notice %s", notice_id)


@transactional(read_only=True)
async def get_board_stats(db: AsyncSession) -> dict:
    """Row counts for the metrics endpoint."""
    total_notices = (await db.execute(select(func.count()).select_from(Notice))).scalar_one()
    active_notices = (
        await db.execute(
            select(func.count()).select_from(Notice).where(Notice.is_deleted.is_(False))
        )
    ).scalar_one()
    total_attachments = (
        await db.execute(select(func.count()).select_from(Attachment))
    ).scalar_one()
    active_attachments = (
        await db.execute(
            select(func.count()).select_from(Attachment).where(Attachment.is_deleted.is_(False))
        )
    ).scalar_one()
    return {
        "total_notices": total_notices,
        "active_notices": active_notices,
        "total_attachments": total_attachments,
        "active_attachments": active_attachments,
    }
