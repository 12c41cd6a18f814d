"""Reassembles a fingerprint's chunk records into the merged artifact."""

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional

from common.constants import MAX_FILE_NAME_LENGTH
from common.exceptions import (
    CorruptNamespace,
    IncompleteUpload,
    InvalidMergeRequest,
    MergeFailed,
)
from common.types import MergeResult
from common.validation import artifact_name, is_safe_file_name, normalize_fingerprint
from server.chunk_index import TEMP_PREFIX
from server.chunk_store import ChunkStore

logger = logging.getLogger(__name__)

COPY_BUFFER_BYTES = 1024 * 1024


class MergeEngine:
    """
    Validates, orders and concatenates chunk records, then reclaims the namespace.

    The whole sequence (list, sort, concatenate, delete) runs under the
    fingerprint's exclusive namespace lock, so no chunk write can land
    between listing and deletion and two merges of one fingerprint are
    serialized.
    """

    def __init__(self, chunk_store: ChunkStore):
        self.chunk_store = chunk_store

    @property
    def root(self) -> Path:
        return self.chunk_store.root

    def artifact_path(self, fingerprint: str, file_name: str) -> Path:
        return self.root / artifact_name(fingerprint, file_name)

    def merge(self, fingerprint: Optional[str], file_name: Optional[str], total: int) -> MergeResult:
        """
        Produce the merged artifact for a fingerprint.

        Args:
            fingerprint: File fingerprint
            file_name: Original file name
            total: Number of chunks the client produced

        Returns:
            MergeResult describing the artifact

        Raises:
            InvalidMergeRequest: If fingerprint, file name or total is unusable
            IncompleteUpload: If stored chunks are not exactly indices 0..total-1
            CorruptNamespace: If two records claim one index or a record name is unparsable
            MergeFailed: If reading records or writing the artifact fails
            NamespaceBusy: If the namespace lock cannot be acquired in time
        """
        fingerprint, file_name = self._validate(fingerprint, file_name, total)

        with self.chunk_store.locks.exclusive(fingerprint):
            try:
                index = self.chunk_store.scan(fingerprint)
            except OSError as e:
                logger.error(f"Failed to list namespace {fingerprint} for merge: {e}")
                raise MergeFailed(f"Failed to list stored chunks: {e}", fingerprint=fingerprint) from e

            found = index.count()
            if found != total:
                logger.warning(f"Chunk count mismatch for {fingerprint}: expected {total}, found {found}")
                raise IncompleteUpload(
                    f"Chunk count mismatch: expected {total}, found {found}",
                    fingerprint=fingerprint,
                    expected=total,
                    found=found,
                    missing=index.missing(total),
                )

            if index.unrecognized:
                raise CorruptNamespace(
                    f"Unrecognized entries in namespace: {', '.join(index.unrecognized)}",
                    fingerprint=fingerprint,
                )

            duplicates = index.duplicates()
            if duplicates:
                chunk_index, names = sorted(duplicates.items())[0]
                logger.error(f"Duplicate records for chunk {chunk_index} of {fingerprint}: {names}")
                raise CorruptNamespace(
                    f"Chunk {chunk_index} is stored more than once ({', '.join(names)})",
                    fingerprint=fingerprint,
                    index=chunk_index,
                )

            missing = index.missing(total)
            if missing:
                raise IncompleteUpload(
                    f"Missing chunks: {missing}",
                    fingerprint=fingerprint,
                    expected=total,
                    found=found,
                    missing=missing,
                )

            final_path = self.artifact_path(fingerprint, file_name)
            size = self._concatenate(fingerprint, index.ordered(), final_path)

            try:
                self.chunk_store.delete_namespace(fingerprint)
            except OSError as e:
                logger.error(f"Merged {final_path.name} but failed to remove namespace {fingerprint}: {e}")
                raise MergeFailed(
                    f"Artifact written but chunk cleanup failed: {e}", fingerprint=fingerprint
                ) from e

        logger.info(f"Merged {total} chunk(s) of {fingerprint} into {final_path.name} ({size} bytes)")
        return MergeResult(
            fingerprint=fingerprint,
            file_name=file_name,
            artifact_name=final_path.name,
            path=final_path,
            size=size,
            chunk_count=total,
        )

    def _validate(self, fingerprint, file_name, total):
        normalized = normalize_fingerprint(fingerprint)
        if normalized is None:
            raise InvalidMergeRequest(f"Fingerprint {fingerprint!r} is not a safe storage key")
        if not is_safe_file_name(file_name):
            raise InvalidMergeRequest(f"Invalid file name {file_name!r}", fingerprint=normalized)
        if len(artifact_name(normalized, file_name).encode("utf-8")) > MAX_FILE_NAME_LENGTH:
            raise InvalidMergeRequest("File name is too long", fingerprint=normalized)
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise InvalidMergeRequest(
                f"Total must be a non-negative integer, got {total!r}", fingerprint=normalized
            )
        return normalized, file_name

    def _concatenate(self, fingerprint, records, final_path: Path) -> int:
        """
        Stream records into a hidden temporary file and rename it into place.

        On failure the temporary file is removed and nothing appears at
        ``final_path``; the namespace is left untouched.
        """
        temp_path = self.root / f"{TEMP_PREFIX}{final_path.name}.{uuid.uuid4().hex}.part"
        current = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as out:
                for record in records:
                    current = record.index
                    with open(record.path, "rb") as src:
                        shutil.copyfileobj(src, out, COPY_BUFFER_BYTES)
                out.flush()
                os.fsync(out.fileno())
                size = out.tell()
            os.replace(temp_path, final_path)
        except OSError as e:
            logger.error(f"Merge of {fingerprint} failed at chunk {current}: {e}")
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Failed to remove partial artifact {temp_path}: {cleanup_error}")
            raise MergeFailed(
                f"Failed to assemble artifact: {e}", fingerprint=fingerprint, index=current
            ) from e
        return size
