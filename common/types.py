"""Shared data type definitions (Chunk, ChunkRecord, MergeResult)."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Chunk:
    """
    One indexed, contiguous byte range of a file.
    """
    index: int
    offset: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        return self.offset + len(self.data)


@dataclass(frozen=True)
class ChunkRecord:
    """
    A persisted chunk, as recovered from its name in the chunk namespace.
    """
    fingerprint: str
    index: int
    path: Path

    @property
    def size(self) -> int:
        return self.path.stat().st_size


@dataclass(frozen=True)
class MergeResult:
    """
    Outcome of a successful merge.
    """
    fingerprint: str
    file_name: str
    artifact_name: str
    path: Path
    size: int
    chunk_count: int
