"""Pydantic schemas for the asset listing endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel


class AssetResponse(BaseModel):
    """Metadata of one merged artifact."""
    name: str
    size: int
    formatted_size: str
    modified: datetime
    url: str
    is_image: bool
    is_video: bool
    is_audio: bool
    is_text: bool


class AssetListResponse(BaseModel):
    """Response model for the asset listing."""
    title: str
    message: str
    files: List[AssetResponse]


class HomeResponse(BaseModel):
    """Response model for the landing endpoint."""
    title: str
    message: str
    status: str
