from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from notice_api.database import get_db
from notice_api.dependencies import get_file_storage
from notice_api.services.file_storage_service import FileStorageService

router = APIRouter(prefix="/api/v1/files", tags=["files"])


@router.get("/download/{file_id}")
async def download_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    meta = await storage.get_file(db, file_id)
    path = storage.load_file_as_resource(meta["stored_file_name"])
    return FileResponse(path, filename=meta["original_file_name"])
