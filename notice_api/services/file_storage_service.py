"""
File storage service — attachment bytes on local disk plus their metadata rows.

Design notes
------------
- Uploaded bytes are written under a single root directory using a
  generated name (``uuid4().hex`` + original extension), so the client's
  filename never becomes part of a filesystem path.  The original name
  is still validated and rejected if it carries a ``..`` sequence.
- Every operation runs sequentially in the calling request.  There is
  no locking on the root directory; uniqueness of generated names is the
  only protection against collisions.
- Metadata writes only flush; the request-scoped ``get_db`` dependency
  commits or rolls back.
"""
import logging
import shutil
import uuid
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notice_api.cache import cache, file_detail_key
from notice_api.config import settings
from notice_api.exceptions import (
    AttachmentNotFoundError,
    FileStorageError,
    InvalidFileNameError,
)
from notice_api.models import Attachment, Notice
from notice_api.routing import transactional

logger = logging.getLogger(__name__)


def attachment_to_dict(attachment: Attachment) -> dict:
    return {
        "id": attachment.id,
        "original_file_name": attachment.original_file_name,
        "stored_file_name": attachment.stored_file_name,
        "file_path": attachment.file_path,
    }


def validate_file_name(file_name: str | None) -> None:
    if not file_name or ".." in file_name:
        raise InvalidFileNameError(
            f"Filename contains invalid path sequence or is null: {file_name}"
        )


def validate_file_names(files: list[UploadFile]) -> None:
    """Reject the whole batch if any upload has an invalid name."""
    for upload in files:
        validate_file_name(upload.filename)


def generate_stored_name(original_file_name: str) -> str:
    """Return a collision-free name keeping the original extension."""
    return uuid.uuid4().hex + Path(original_file_name).suffix


class FileStorageService:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileStorageError(f"Could not create the directory {self.root}") from exc

    # ------------------------------------------------------------------
    # Disk operations
    # ------------------------------------------------------------------

    def store_file(self, upload: UploadFile) -> str:
        """
        Copy *upload* to the storage root and return its stored name.

        The filename is validated before anything touches the disk.
        """
        original = upload.filename
        validate_file_name(original)
        stored_name = generate_stored_name(original)
        target = self.root / stored_name
        try:
            upload.file.seek(0)
            with target.open("xb") as buffer:
                shutil.copyfileobj(upload.file, buffer)
        except OSError as exc:
            raise FileStorageError(
                f"Could not store file {original}. Please try again!"
            ) from exc
        logger.info("Stored %r as %s", original, stored_name)
        return stored_name

    def load_file_as_resource(self, stored_file_name: str) -> Path:
        """Return the on-disk path of *stored_file_name*, checking it exists."""
        path = (self.root / stored_file_name).resolve()
        if not path.is_relative_to(self.root) or not path.is_file():
            raise FileStorageError(f"File not found {stored_file_name}")
        return path

    def delete_physical_file(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Metadata operations
    # ------------------------------------------------------------------

    @transactional
    async def process_files(
        self, db: AsyncSession, files: list[UploadFile], notice: Notice
    ) -> list[Attachment]:
        """
        Store each upload and attach a metadata row to *notice*.

        Every name is checked before the first file is written.
        """
        validate_file_names(files)
        attachments: list[Attachment] = []
        for upload in files:
            stored_name = self.store_file(upload)
            attachment = Attachment(
                original_file_name=upload.filename,
                stored_file_name=stored_name,
                file_path=str(self.root / stored_name),
                is_deleted=False,
            )
            notice.attachments.append(attachment)
            db.add(attachment)
            attachments.append(attachment)
        if attachments:
            await db.flush()
        return attachments

    @transactional
    async def delete_files_by_notice(self, db: AsyncSession, notice: Notice) -> None:
        """Mark every live attachment of *notice* deleted and remove its bytes."""
        result = await db.execute(
            select(Attachment).where(
                Attachment.notice_id == notice.id,
                Attachment.is_deleted.is_(False),
            )
        )
        for attachment in result.scalars().all():
            attachment.is_deleted = True
            try:
                self.delete_physical_file(Path(attachment.file_path))
            except OSError as exc:
                raise FileStorageError(
                    f"Could not delete file {attachment.stored_file_name}"
                ) from exc
            logger.info("Deleted attachment %s of notice %s", attachment.stored_file_name, notice.id)
        await db.flush()
        await cache.invalidate_files()

    @transactional(read_only=True)
    async def get_file(self, db: AsyncSession, file_id: int) -> dict:
        """Return metadata for a live attachment, served from cache when possible."""
        cache_key = file_detail_key(file_id)
        cached = await cache.get(cache_key)
        if cached:
            return cached

        result = await db.execute(
            select(Attachment).where(
                Attachment.id == file_id,
                Attachment.is_deleted.is_(False),
            )
        )
        attachment = result.scalar_one_or_none()
        if attachment is None:
            raise AttachmentNotFoundError(f"File not found with id {file_id}")

        data = attachment_to_dict(attachment)
        await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
        return data
