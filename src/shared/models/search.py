# src/shared/models/search.py
"""
DTO поискового индекса.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SearchPostDTO(BaseModel):
    """Запись поискового индекса (проекция Search Service)."""

    model_config = ConfigDict(from_attributes=True)

    post_id: str
    user_id: str
    title: str
    content: str
    indexed_at: datetime


class SearchResponse(BaseModel):
    query: str
    items: list[SearchPostDTO]
