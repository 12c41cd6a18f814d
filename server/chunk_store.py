"""Persists chunk records, one directory (namespace) per fingerprint."""

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import List, Optional, Tuple, Union

from common.constants import MAX_CHUNK_BYTES
from common.exceptions import InvalidChunkRequest, ResumeLookupError, StorageError
from common.types import ChunkRecord
from common.validation import normalize_fingerprint
from server.chunk_index import TEMP_PREFIX, NamespaceIndex, record_name
from server.namespace_locks import NamespaceLocks

logger = logging.getLogger(__name__)


class ChunkStore:
    """
    Chunk records on disk under an explicit storage root.

    Layout::

        <root>/<fingerprint>/<fingerprint>-<index>    chunk records
        <root>/<fingerprint>-<fileName>               merged artifacts
    """

    def __init__(
        self,
        root: Path,
        locks: Optional[NamespaceLocks] = None,
        max_chunk_bytes: int = MAX_CHUNK_BYTES,
    ):
        self.root = Path(root)
        self.locks = locks if locks is not None else NamespaceLocks()
        self.max_chunk_bytes = max_chunk_bytes

    def namespace_path(self, fingerprint: str) -> Path:
        """Directory holding the chunk records of a fingerprint."""
        return self.root / fingerprint

    def validate_chunk_request(
        self,
        fingerprint: Optional[str],
        index: Optional[Union[int, str]],
    ) -> Tuple[str, int]:
        """
        Validate the addressing part of a chunk write.

        Args:
            fingerprint: Raw fingerprint (query parameter)
            index: Raw chunk index, as int or decimal string

        Returns:
            Tuple of (normalized fingerprint, index)

        Raises:
            InvalidChunkRequest: If either value is missing or unusable
        """
        if fingerprint is None or not str(fingerprint).strip():
            raise InvalidChunkRequest("Missing required parameter 'fingerprint'")

        normalized = normalize_fingerprint(fingerprint)
        if normalized is None:
            raise InvalidChunkRequest(f"Fingerprint {fingerprint!r} is not a safe storage key")

        if index is None or (isinstance(index, str) and not index.strip()):
            raise InvalidChunkRequest("Missing required parameter 'index'", fingerprint=normalized)

        if isinstance(index, bool):
            raise InvalidChunkRequest(f"Invalid chunk index {index!r}", fingerprint=normalized)
        if isinstance(index, str):
            raw = index.strip()
            if not (raw.isascii() and raw.isdigit()):
                raise InvalidChunkRequest(
                    f"Chunk index must be a non-negative integer, got {index!r}",
                    fingerprint=normalized,
                )
            index = int(raw)
        if index < 0:
            raise InvalidChunkRequest(
                f"Chunk index must be a non-negative integer, got {index}",
                fingerprint=normalized,
            )

        return normalized, index

    def check_payload_size(self, fingerprint: str, index: int, size: Optional[int]) -> None:
        """
        Reject a chunk payload larger than ``max_chunk_bytes``.

        ``size`` may be None when the length is not known up front.

        Raises:
            InvalidChunkRequest: If the payload is too large
        """
        if size is not None and size > self.max_chunk_bytes:
            raise InvalidChunkRequest(
                f"Chunk payload of {size} bytes exceeds limit of {self.max_chunk_bytes}",
                fingerprint=fingerprint,
                index=index,
            )

    def write_chunk(
        self,
        fingerprint: Optional[str],
        index: Optional[Union[int, str]],
        data: bytes,
    ) -> ChunkRecord:
        """
        Durably persist one chunk, replacing any earlier record of the same index.

        The bytes go to a hidden temporary file which is renamed over the
        record name, so concurrent writes of one index never interleave.

        Args:
            fingerprint: File fingerprint (namespace key)
            index: Chunk index
            data: Raw chunk bytes

        Returns:
            The written ChunkRecord

        Raises:
            InvalidChunkRequest: If addressing or payload is invalid
            NamespaceBusy: If a merge of the namespace holds the lock too long
            StorageError: If the record cannot be written
        """
        fingerprint, index = self.validate_chunk_request(fingerprint, index)

        if not data:
            raise InvalidChunkRequest("Chunk payload is empty", fingerprint=fingerprint, index=index)
        self.check_payload_size(fingerprint, index, len(data))

        with self.locks.shared(fingerprint):
            namespace_dir = self.namespace_path(fingerprint)
            target = namespace_dir / record_name(fingerprint, index)
            temp_path = namespace_dir / f"{TEMP_PREFIX}{target.name}.{uuid.uuid4().hex}.tmp"

            try:
                namespace_dir.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, target)
            except OSError as e:
                logger.error(f"Failed to write chunk {index} of {fingerprint}: {e}")
                _remove_quietly(temp_path)
                raise StorageError(
                    f"Failed to store chunk {index}: {e}",
                    fingerprint=fingerprint,
                    index=index,
                ) from e

        logger.info(f"Stored chunk {index} of {fingerprint} ({len(data)} bytes)")
        return ChunkRecord(fingerprint=fingerprint, index=index, path=target)

    def scan(self, fingerprint: str) -> NamespaceIndex:
        """
        List the namespace of an already-normalized fingerprint.

        Callers hold the fingerprint's namespace lock.
        """
        return NamespaceIndex.scan(self.namespace_path(fingerprint), fingerprint)

    def stored_indices(self, fingerprint: Optional[str]) -> List[int]:
        """
        Resume query: chunk indices already stored for a fingerprint.

        Never creates the namespace.

        Args:
            fingerprint: File fingerprint

        Returns:
            Sorted list of stored indices (empty if the namespace does not exist)

        Raises:
            InvalidChunkRequest: If the fingerprint is missing or unsafe
            ResumeLookupError: If the namespace cannot be listed
        """
        if fingerprint is None or not str(fingerprint).strip():
            raise InvalidChunkRequest("Missing required parameter 'fingerprint'")
        normalized = normalize_fingerprint(fingerprint)
        if normalized is None:
            raise InvalidChunkRequest(f"Fingerprint {fingerprint!r} is not a safe storage key")

        with self.locks.shared(normalized):
            try:
                index = self.scan(normalized)
            except OSError as e:
                logger.error(f"Failed to list namespace {normalized}: {e}")
                raise ResumeLookupError(
                    f"Failed to read stored chunks: {e}", fingerprint=normalized
                ) from e

        indices = index.indices()
        logger.debug(f"Namespace {normalized} holds {len(indices)} chunk(s)")
        return indices

    def delete_namespace(self, fingerprint: str) -> bool:
        """
        Delete a namespace with all its records.

        Callers hold the fingerprint's namespace lock exclusively.

        Returns:
            True if the namespace existed and was removed, False otherwise

        Raises:
            OSError: If removal fails
        """
        namespace_dir = self.namespace_path(fingerprint)
        if not namespace_dir.exists():
            return False
        shutil.rmtree(namespace_dir)
        logger.info(f"Removed chunk namespace {fingerprint}")
        return True


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temporary file {path}: {e}")
