# src/shared/models/media.py
"""
DTO медиа.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MediaDTO(BaseModel):
    """Метаданные медиа (проекция Media Service)."""

    model_config = ConfigDict(from_attributes=True)

    media_id: str
    post_id: str | None = None
    user_id: str
    public_id: str
    storage_url: str
    mime_type: str | None = None
    created_at: datetime


class RegisterMediaRequest(BaseModel):
    """Регистрация загруженного медиа."""

    public_id: str = Field(..., min_length=1, max_length=500)
    storage_url: str = Field(..., min_length=1, max_length=2000)
    mime_type: str | None = Field(default=None, max_length=100)
    post_id: str | None = None
