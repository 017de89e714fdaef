"""Tests for CMS media upload and deletion."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from factories import added_objects, make_content_item, make_media, result_with
from httpx import AsyncClient
from iobic.config import reset_settings_cache
from iobic.models import ContentItem, Media

PNG_BYTES = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def upload_dir(monkeypatch, tmp_path) -> Path:
    target = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(target))
    reset_settings_cache()
    return target


class TestUpload:
    async def test_upload_stores_file_and_row(
        self, client: AsyncClient, mock_db, admin_headers, upload_dir
    ):
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["originalName"] == "logo.png"
        assert body["mimeType"] == "image/png"
        assert body["size"] == len(PNG_BYTES)
        assert body["filename"].endswith(".png")
        assert body["filename"] != "logo.png"
        assert body["path"] == f"/uploads/{body['filename']}"
        assert body["contentItemId"] is None
        assert (upload_dir / body["filename"]).read_bytes() == PNG_BYTES

        (row,) = added_objects(mock_db, Media)
        assert row.filename == body["filename"]

    async def test_upload_linked_to_content_item(
        self, client: AsyncClient, db_objects, admin_headers, upload_dir
    ):
        db_objects[(ContentItem, 10)] = make_content_item()
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            data={"contentItemId": "10"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["contentItemId"] == 10

    async def test_upload_unknown_content_item(
        self, client: AsyncClient, mock_db, admin_headers, upload_dir
    ):
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            data={"contentItemId": "404"},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        mock_db.add.assert_not_called()
        assert not upload_dir.exists() or not any(upload_dir.iterdir())

    async def test_upload_rejects_mime_type(
        self, client: AsyncClient, mock_db, admin_headers, upload_dir
    ):
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("run.sh", b"#!/bin/sh", "application/x-sh")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid file type"
        mock_db.add.assert_not_called()

    async def test_upload_too_large(
        self, client: AsyncClient, mock_db, admin_headers, upload_dir, monkeypatch
    ):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "4")
        reset_settings_cache()
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            headers=admin_headers,
        )
        assert resp.status_code == 413
        mock_db.add.assert_not_called()

    async def test_upload_without_file(self, client: AsyncClient, admin_headers, upload_dir):
        resp = await client.post("/api/cms/media", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No file provided"

    async def test_upload_requires_admin(
        self, client: AsyncClient, mock_db, member_headers, upload_dir
    ):
        resp = await client.post(
            "/api/cms/media",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            headers=member_headers,
        )
        assert resp.status_code == 403
        mock_db.add.assert_not_called()


class TestListing:
    async def test_media_for_content_item(self, client: AsyncClient, mock_db):
        mock_db.execute.return_value = result_with(rows=[make_media(content_item_id=10)])
        resp = await client.get("/api/cms/media/content/10")
        assert resp.status_code == 200
        assert resp.json()[0]["contentItemId"] == 10

    async def test_list_all_requires_admin(self, client: AsyncClient):
        resp = await client.get("/api/cms/media")
        assert resp.status_code == 401


class TestDelete:
    async def test_file_removed_before_row(
        self, client: AsyncClient, mock_db, db_objects, admin_headers, upload_dir
    ):
        media = make_media()
        db_objects[(Media, media.id)] = media
        upload_dir.mkdir(parents=True)
        stored = upload_dir / media.filename
        stored.write_bytes(PNG_BYTES)

        file_present_at_row_delete: list[bool] = []

        async def _delete(obj):
            file_present_at_row_delete.append(stored.exists())

        mock_db.delete.side_effect = _delete

        resp = await client.delete(f"/api/cms/media/{media.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert not stored.exists()
        assert file_present_at_row_delete == [False]

    async def test_missing_file_still_deletes_row(
        self, client: AsyncClient, mock_db, db_objects, admin_headers, upload_dir
    ):
        media = make_media()
        db_objects[(Media, media.id)] = media

        resp = await client.delete(f"/api/cms/media/{media.id}", headers=admin_headers)

        assert resp.status_code == 200
        mock_db.delete.assert_awaited_once_with(media)

    async def test_unlink_failure_keeps_row(
        self, client: AsyncClient, mock_db, db_objects, admin_headers, upload_dir
    ):
        media = make_media()
        db_objects[(Media, media.id)] = media

        with patch("pathlib.Path.unlink", side_effect=PermissionError("read-only volume")):
            resp = await client.delete(f"/api/cms/media/{media.id}", headers=admin_headers)

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to delete media file"
        mock_db.delete.assert_not_awaited()

    async def test_delete_unknown_media(self, client: AsyncClient, admin_headers, upload_dir):
        resp = await client.delete("/api/cms/media/999", headers=admin_headers)
        assert resp.status_code == 404
