"""Utility functions for CLI output."""

import sys
from typing import Optional, TextIO

from client.constants import GREEN, RED, RESET
from client.orchestrator import UploadReport
from common.types import Chunk
from common.utils import format_file_size


class ChunkProgress:
    """Progress callback that rewrites one stdout line per uploaded chunk."""

    def __init__(self, filename: str, file_size: int, stream: Optional[TextIO] = None):
        """
        Initialize the progress display.

        Args:
            filename: Display name for the file
            file_size: Total size of the file in bytes
            stream: Output stream (defaults to stdout)
        """
        self.filename = filename
        self.file_size = file_size
        self.stream = stream or sys.stdout
        self._shown = False

    def __call__(self, chunk: Chunk, done: int, total: int) -> None:
        progress = (done / total) * 100 if total else 100.0
        self.stream.write(
            f"\rUploading {self.filename}: chunk {done}/{total} "
            f"[{format_file_size(chunk.end)} / {format_file_size(self.file_size)}] "
            f"({GREEN}{progress:.1f}%{RESET})"
        )
        self.stream.flush()
        self._shown = True

    def finish(self) -> None:
        """Terminate the progress line if anything was shown."""
        if self._shown:
            self.stream.write('\n')
            self.stream.flush()
            self._shown = False


def format_report(report: UploadReport) -> str:
    """
    Render an upload report as a one-line summary.

    Args:
        report: Finished UploadReport

    Returns:
        Human-readable result line
    """
    name = report.path.name
    if report.success:
        resumed = f", {len(report.skipped)} already on server" if report.skipped else ""
        return (
            f"Uploaded: {name} -> {report.url} "
            f"({report.total} chunk(s), {len(report.uploaded)} sent{resumed})"
        )

    error = report.error
    where = report.failed_state.value if report.failed_state else "unknown"
    detail = f"{error.code}: {error.message}" if error else "unknown error"
    if report.failed_index is not None:
        where = f"{where}, chunk {report.failed_index}"
    return f"{RED}Error uploading {name}{RESET} ({where}): {detail}"
