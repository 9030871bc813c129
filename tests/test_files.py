"""File download endpoint tests."""
import pytest
from httpx import AsyncClient

from conftest import notice_form
from notice_api.services.file_storage_service import FileStorageService


async def _create_with_file(client: AsyncClient, name: str, payload: bytes) -> dict:
    resp = await client.post(
        "/api/v1/notices",
        data=notice_form(title="Has file", content="C"),
        files=[("files", (name, payload, "application/octet-stream"))],
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_download_returns_bytes_and_disposition(async_client: AsyncClient):
    created = await _create_with_file(async_client, "minutes.txt", b"meeting minutes")
    file_id = created["attachments"][0]["id"]

    resp = await async_client.get(f"/api/v1/files/download/{file_id}")
    assert resp.status_code == 200
    assert resp.content == b"meeting minutes"
    assert resp.headers["content-disposition"] == 'attachment; filename="minutes.txt"'
    assert resp.headers["x-data-source"] == "slave"


@pytest.mark.asyncio
async def test_download_unknown_file(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/files/download/424242")
    assert resp.status_code == 404
    assert resp.json()["error"] == "FileNotFound"


@pytest.mark.asyncio
async def test_download_file_of_deleted_notice(async_client: AsyncClient):
    created = await _create_with_file(async_client, "gone.bin", b"\x00\x01")
    file_id = created["attachments"][0]["id"]
    await async_client.delete(f"/api/v1/notices/{created['id']}")

    resp = await async_client.get(f"/api/v1/files/download/{file_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_download_replaced_attachment(async_client: AsyncClient):
    created = await _create_with_file(async_client, "v1.txt", b"one")
    old_id = created["attachments"][0]["id"]
    await async_client.put(
        f"/api/v1/notices/{created['id']}",
        data=notice_form(
            title="Has file",
            content="C",
            start_date="2026-01-01T00:00:00",
            end_date="2026-01-02T00:00:00",
        ),
        files=[("files", ("v2.txt", b"two", "text/plain"))],
    )
    assert (await async_client.get(f"/api/v1/files/download/{old_id}")).status_code == 404


@pytest.mark.asyncio
async def test_download_when_bytes_missing_on_disk(
    async_client: AsyncClient, storage: FileStorageService
):
    """The metadata row survives but the stored file was removed out of band."""
    created = await _create_with_file(async_client, "lost.txt", b"lost")
    attachment = created["attachments"][0]
    (storage.root / attachment["stored_file_name"]).unlink()

    resp = await async_client.get(f"/api/v1/files/download/{attachment['id']}")
    assert resp.status_code == 500
    assert resp.json() == {
        "error": "FileStorageError",
        "message": f"File not found {attachment['stored_file_name']}",
    }
