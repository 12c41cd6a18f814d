"""Cheap, stable file fingerprints from three sampled windows."""

import hashlib
import os
from pathlib import Path
from typing import List, Tuple, Union

from common.constants import SAMPLE_WINDOW_BYTES
from common.exceptions import ReadError
from common.logging_config import get_logger

logger = get_logger(__name__)

READ_BLOCK_BYTES = 64 * 1024


class Fingerprinter:
    """
    Compute a file fingerprint without reading the whole file.

    The first, middle and last ``sample_window`` bytes are fed, in that
    order, into one MD5 digest. Windows are clamped to the file, so small
    files are hashed through overlapping windows; the result is still a
    pure function of the file's bytes.

    Usage:
        fingerprinter = Fingerprinter()
        fingerprint = fingerprinter.fingerprint("video.mp4")
    """

    def __init__(self, sample_window: int = SAMPLE_WINDOW_BYTES):
        if sample_window <= 0:
            raise ValueError("sample_window must be positive")
        self.sample_window = sample_window

    def sample_ranges(self, size: int) -> List[Tuple[int, int]]:
        """
        Byte ranges ``[start, end)`` sampled for a file of ``size`` bytes.

        Args:
            size: File size in bytes

        Returns:
            Ranges for the first, middle and last window, in hashing order
        """
        window = self.sample_window
        half = window // 2
        middle = size // 2
        return [
            (0, min(window, size)),
            (max(0, middle - half), min(size, middle - half + window)),
            (max(0, size - window), size),
        ]

    def fingerprint(self, path: Union[str, Path]) -> str:
        """
        Fingerprint a file.

        Args:
            path: Path to the file

        Returns:
            Hex MD5 digest of the sampled windows

        Raises:
            ReadError: If the file or any window cannot be read in full
        """
        path = Path(path)
        hasher = hashlib.md5()
        try:
            size = os.path.getsize(path)
            with open(path, 'rb') as f:
                for start, end in self.sample_ranges(size):
                    self._hash_range(f, start, end, hasher, path)
        except OSError as e:
            logger.error(f"Failed to read {path} for fingerprinting: {e}")
            raise ReadError(f"Cannot read {path}: {e}") from e

        fingerprint = hasher.hexdigest()
        logger.debug(f"Fingerprint of {path} ({size} bytes): {fingerprint}")
        return fingerprint

    @staticmethod
    def _hash_range(f, start: int, end: int, hasher, path: Path) -> None:
        f.seek(start)
        remaining = end - start
        while remaining > 0:
            block = f.read(min(READ_BLOCK_BYTES, remaining))
            if not block:
                raise ReadError(f"Unexpected end of {path} at offset {end - remaining}")
            hasher.update(block)
            remaining -= len(block)
