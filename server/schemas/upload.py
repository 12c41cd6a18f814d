"""Pydantic schemas for the chunk upload, resume and merge endpoints."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ChunkUploadResponse(BaseModel):
    """Response model for a stored chunk."""
    code: int = 200
    success: bool = True
    message: str


class ChunkListResponse(BaseModel):
    """Response model for the resume query."""
    success: bool = True
    data: List[int]


class MergeRequest(BaseModel):
    """Request model for merging a fingerprint's chunks."""
    model_config = ConfigDict(populate_by_name=True)

    fingerprint: str
    file_name: str = Field(alias="fileName")
    total: int


class MergeResponse(BaseModel):
    """Response model for a successful merge."""
    code: int = 200
    success: bool = True
    message: str
    url: str
