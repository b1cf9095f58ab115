# src/shared/models/post.py
"""
DTO постов.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostDTO(BaseModel):
    """Пост (источник истины: Post Service)."""

    model_config = ConfigDict(from_attributes=True)

    post_id: str
    user_id: str
    title: str
    content: str
    media_ids: list[str] = Field(default_factory=list)
    created_at: datetime


class CreatePostRequest(BaseModel):
    """Запрос на создание поста."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    media_ids: list[str] = Field(default_factory=list, max_length=10)


class CreatePostResponse(BaseModel):
    """
    Ответ на создание поста.
    warnings непустой, если запись сохранена, но событие не опубликовано.
    """

    post: PostDTO
    warnings: list[str] = Field(default_factory=list)


class DeletePostResponse(BaseModel):
    deleted: bool = True
    post_id: str
    warnings: list[str] = Field(default_factory=list)
