"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload files in chunks and merge them on the server."""

    file_list: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class StatusCommand:
    """Show resume status of a local file."""

    file_path: str
    command: Literal["status"] = "status"


@dataclass(frozen=True)
class AssetsCommand:
    """List merged files on the server."""

    command: Literal["assets"] = "assets"


CommandRequest = UploadCommand | StatusCommand | AssetsCommand
