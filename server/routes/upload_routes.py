"""Chunk upload, resume query and merge API routes."""

import asyncio
from typing import Optional

from fastapi import APIRouter, File, Query, UploadFile

from common.exceptions import InvalidChunkRequest
from common.validation import asset_url
from server.dependencies import ChunkStoreDep, MergeEngineDep
from server.schemas.upload import (
    ChunkListResponse,
    ChunkUploadResponse,
    MergeRequest,
    MergeResponse,
)

router = APIRouter(prefix="/upload", tags=["Upload"])


@router.post("", response_model=ChunkUploadResponse)
async def upload_chunk(
    chunk_store: ChunkStoreDep,
    fingerprint: Optional[str] = Query(None, description="Fingerprint of the whole file"),
    index: Optional[str] = Query(None, description="Zero-based chunk index"),
    file: Optional[UploadFile] = File(None),
):
    """
    Store one chunk of a file.

    Parameters:
        - fingerprint: File fingerprint (query, required)
        - index: Chunk index (query, required)
        - file: Raw chunk bytes (multipart/form-data)

    Returns:
        - success: True once the chunk is durably stored

    Raises:
        - 400: Missing or invalid fingerprint, index or payload
        - 423: Namespace is being merged
        - 500: Chunk could not be written
    """
    fingerprint, chunk_index = chunk_store.validate_chunk_request(fingerprint, index)

    if file is None:
        raise InvalidChunkRequest(
            "Missing chunk payload (form field 'file')",
            fingerprint=fingerprint,
            index=chunk_index,
        )

    # Never buffer more than one byte past the limit.
    chunk_store.check_payload_size(fingerprint, chunk_index, file.size)
    data = await file.read(chunk_store.max_chunk_bytes + 1)
    chunk_store.check_payload_size(fingerprint, chunk_index, len(data))

    record = await asyncio.to_thread(chunk_store.write_chunk, fingerprint, chunk_index, data)

    return ChunkUploadResponse(message=f"Chunk {record.index} uploaded")


@router.get("/chunks", response_model=ChunkListResponse)
async def list_uploaded_chunks(
    chunk_store: ChunkStoreDep,
    fingerprint: Optional[str] = Query(None, description="Fingerprint of the whole file"),
):
    """
    Resume query: list the chunk indices already stored for a fingerprint.

    Returns:
        - data: Sorted chunk indices (empty if nothing was uploaded yet)

    Raises:
        - 400: Missing or invalid fingerprint
        - 500: Storage could not be read
    """
    indices = await asyncio.to_thread(chunk_store.stored_indices, fingerprint)
    return ChunkListResponse(data=indices)


@router.post("/merge", response_model=MergeResponse)
async def merge_chunks(request: MergeRequest, merge_engine: MergeEngineDep):
    """
    Merge all stored chunks of a fingerprint into the final artifact.

    Parameters:
        - fingerprint: File fingerprint
        - fileName: Original file name
        - total: Number of chunks the file was split into

    Returns:
        - url: Where the merged artifact can be retrieved

    Raises:
        - 400: Invalid request or chunk count mismatch
        - 409: Two records claim the same chunk index
        - 423: Namespace is locked by another merge
        - 500: Artifact could not be assembled (chunks are kept)
    """
    result = await asyncio.to_thread(
        merge_engine.merge, request.fingerprint, request.file_name, request.total
    )
    return MergeResponse(message="Merge succeeded", url=asset_url(result.artifact_name))
