"""Configuration settings for the upload server."""

import os
from dataclasses import dataclass
from pathlib import Path

from common.constants import (
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_SERVER_PORT,
    DEFAULT_UPLOAD_DIR,
    MAX_CHUNK_BYTES,
)


@dataclass(frozen=True)
class ServerSettings:
    """
    Settings for one server instance.

    The storage root is passed explicitly to the chunk store and the merge
    engine, so tests can point every app at its own temporary directory.
    """
    upload_dir: Path
    host: str = "0.0.0.0"
    port: int = DEFAULT_SERVER_PORT
    max_chunk_bytes: int = MAX_CHUNK_BYTES
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Build settings from SLICEUPLOAD_* environment variables."""
        return cls(
            upload_dir=Path(os.environ.get("SLICEUPLOAD_UPLOAD_DIR", DEFAULT_UPLOAD_DIR)).resolve(),
            host=os.environ.get("SLICEUPLOAD_HOST", "0.0.0.0"),
            port=int(os.environ.get("SLICEUPLOAD_PORT", str(DEFAULT_SERVER_PORT))),
            max_chunk_bytes=int(os.environ.get("SLICEUPLOAD_MAX_CHUNK_BYTES", str(MAX_CHUNK_BYTES))),
            lock_timeout=float(
                os.environ.get("SLICEUPLOAD_LOCK_TIMEOUT", str(DEFAULT_LOCK_TIMEOUT_SECONDS))
            ),
        )
