# src/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели сервисов.
"""

from src.shared.models.common import (
    PaginationParams,
    PaginatedResponse,
    ErrorResponse,
    HealthStatus,
)
from src.shared.models.post import (
    PostDTO,
    CreatePostRequest,
    CreatePostResponse,
    DeletePostResponse,
)
from src.shared.models.search import SearchPostDTO, SearchResponse
from src.shared.models.media import MediaDTO, RegisterMediaRequest

__all__ = [
    # Post
    "PostDTO",
    "CreatePostRequest",
    "CreatePostResponse",
    "DeletePostResponse",
    # Search
    "SearchPostDTO",
    "SearchResponse",
    # Media
    "MediaDTO",
    "RegisterMediaRequest",
    # Common
    "PaginationParams",
    "PaginatedResponse",
    "ErrorResponse",
    "HealthStatus",
]
