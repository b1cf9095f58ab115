# tests/services/test_media_app.py
"""
Тесты HTTP API и сервиса медиа.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.services.media.app import app
from src.services.media.dependencies import get_media_service
from src.services.media.service import MediaService
from src.shared.models.media import MediaDTO, RegisterMediaRequest


MEDIA = MediaDTO(
    media_id="m1",
    post_id=None,
    user_id="u1",
    public_id="uploads/m1.png",
    storage_url="https://cdn.example.com/uploads/m1.png",
    mime_type="image/png",
    created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
)


class TestMediaService:
    """Тесты для MediaService."""

    @pytest.mark.asyncio
    async def test_register_media(self) -> None:
        repo = MagicMock()
        repo.create = AsyncMock(return_value=MEDIA)
        service = MediaService(repo)

        media = await service.register_media(
            "u1",
            RegisterMediaRequest(public_id="uploads/m1.png", storage_url=MEDIA.storage_url),
        )

        assert media.media_id == "m1"
        kwargs = repo.create.await_args.kwargs
        assert kwargs["user_id"] == "u1"
        assert kwargs["public_id"] == "uploads/m1.png"
        assert kwargs["media_id"]

    @pytest.mark.asyncio
    async def test_list_media(self) -> None:
        repo = MagicMock()
        repo.list_by_user = AsyncMock(return_value=[MEDIA])

        assert await MediaService(repo).list_media("u1") == [MEDIA]
        repo.list_by_user.assert_awaited_once_with("u1")


class TestMediaApi:
    """Тесты эндпоинтов /api/v1/media."""

    @pytest.fixture
    def service(self) -> MagicMock:
        svc = MagicMock()
        svc.register_media = AsyncMock(return_value=MEDIA)
        svc.list_media = AsyncMock(return_value=[MEDIA])
        return svc

    @pytest.fixture
    def client(self, service: MagicMock) -> Generator[TestClient, None, None]:
        app.dependency_overrides[get_media_service] = lambda: service
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_register_media(self, client: TestClient, service: MagicMock) -> None:
        response = client.post(
            "/api/v1/media",
            json={"public_id": "uploads/m1.png", "storage_url": MEDIA.storage_url},
            headers={"X-User-Id": "u1"},
        )

        assert response.status_code == 201
        assert response.json()["media_id"] == "m1"
        assert service.register_media.await_args.args[0] == "u1"

    def test_list_media(self, client: TestClient) -> None:
        response = client.get("/api/v1/media", headers={"X-User-Id": "u1"})

        assert response.status_code == 200
        assert [m["media_id"] for m in response.json()] == ["m1"]

    def test_list_media_requires_user(self, client: TestClient) -> None:
        assert client.get("/api/v1/media").status_code == 422
