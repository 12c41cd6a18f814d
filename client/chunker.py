"""Lazy, restartable splitting of a file into fixed-size chunks."""

import math
import os
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from common.constants import CHUNK_SIZE_BYTES
from common.exceptions import ReadError
from common.types import Chunk


class Chunker:
    """
    Splits a file into consecutive chunks of ``chunk_size`` bytes.

    The last chunk carries the remainder; an empty file has no chunks.
    Chunks are read on demand, so iterating twice yields the same
    sequence and only one chunk is held in memory at a time.
    """

    def __init__(self, path: Union[str, Path], chunk_size: int = CHUNK_SIZE_BYTES):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.path = Path(path)
        self.chunk_size = chunk_size
        try:
            self.file_size = os.path.getsize(self.path)
        except OSError as e:
            raise ReadError(f"Cannot read {self.path}: {e}") from e

    def __len__(self) -> int:
        return math.ceil(self.file_size / self.chunk_size)

    def spans(self) -> List[Tuple[int, int]]:
        """``(offset, length)`` of every chunk, in index order."""
        return [
            (offset, min(self.chunk_size, self.file_size - offset))
            for offset in range(0, self.file_size, self.chunk_size)
        ]

    def read(self, index: int) -> Chunk:
        """
        Read one chunk by index.

        Raises:
            IndexError: If ``index`` is outside ``[0, len(self))``
            ReadError: If the chunk cannot be read in full
        """
        if not 0 <= index < len(self):
            raise IndexError(f"Chunk index {index} out of range for {len(self)} chunks")
        offset = index * self.chunk_size
        length = min(self.chunk_size, self.file_size - offset)
        try:
            with open(self.path, 'rb') as f:
                f.seek(offset)
                data = f.read(length)
        except OSError as e:
            raise ReadError(f"Cannot read chunk {index} of {self.path}: {e}", index=index) from e
        if len(data) != length:
            raise ReadError(f"Short read for chunk {index} of {self.path}", index=index)
        return Chunk(index=index, offset=offset, data=data)

    def __iter__(self) -> Iterator[Chunk]:
        for index in range(len(self)):
            yield self.read(index)
