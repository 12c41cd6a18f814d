"""Pydantic schemas for API requests and responses."""

from server.schemas.assets import AssetListResponse, AssetResponse, HomeResponse
from server.schemas.common import ErrorResponse
from server.schemas.upload import (
    ChunkListResponse,
    ChunkUploadResponse,
    MergeRequest,
    MergeResponse,
)

__all__ = [
    "AssetListResponse",
    "AssetResponse",
    "HomeResponse",
    "ErrorResponse",
    "ChunkListResponse",
    "ChunkUploadResponse",
    "MergeRequest",
    "MergeResponse",
]
