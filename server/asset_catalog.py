"""Lists and resolves merged artifacts stored in the upload root."""

import logging
import mimetypes
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from common.exceptions import ArtifactNotFound
from common.utils import format_file_size
from common.validation import asset_url, is_safe_file_name
from server.chunk_index import TEMP_PREFIX

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    '.mp4': 'video/mp4',
    '.avi': 'video/x-msvideo',
    '.mov': 'video/mp4',  # served as mp4 for browser playback
    '.wmv': 'video/x-ms-wmv',
    '.flv': 'video/x-flv',
    '.webm': 'video/webm',
    '.mkv': 'video/x-matroska',
    '.mpeg': 'video/mpeg',
    '.mpg': 'video/mpeg',
    '.m4v': 'video/x-m4v',
    '.3gp': 'video/3gpp',
    '.ogv': 'video/ogg',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.ogg': 'audio/ogg',
    '.m4a': 'audio/mp4',
    '.aac': 'audio/aac',
    '.flac': 'audio/flac',
    '.wma': 'audio/x-ms-wma',
    '.aiff': 'audio/aiff',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
}

IMAGE_PATTERN = re.compile(r'\.(jpg|jpeg|png|gif|bmp|webp|svg)$', re.IGNORECASE)
VIDEO_PATTERN = re.compile(r'\.(mp4|avi|wmv|flv|webm|mkv|mpeg|mpg|m4v|3gp|ogv)$', re.IGNORECASE)
AUDIO_PATTERN = re.compile(r'\.(mp3|wav|ogg|m4a|aac|flac|wma|aiff)$', re.IGNORECASE)
TEXT_PATTERN = re.compile(r'\.(txt|md|json|xml|log|css|js|html|csv)$', re.IGNORECASE)


@dataclass(frozen=True)
class AssetInfo:
    """
    Metadata of one merged artifact.
    """
    name: str
    size: int
    formatted_size: str
    modified: datetime
    url: str
    is_image: bool
    is_video: bool
    is_audio: bool
    is_text: bool


class AssetCatalog:
    """Read-only view over the merged artifacts of a storage root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def list_assets(self) -> List[AssetInfo]:
        """
        List merged artifacts, sorted by name.

        Chunk namespaces (directories) and in-progress temporary files are skipped.

        Raises:
            OSError: If the storage root cannot be listed
        """
        if not self.root.exists():
            return []

        assets = []
        for path in sorted(self.root.iterdir()):
            if path.name.startswith(TEMP_PREFIX) or not path.is_file():
                continue
            assets.append(self._describe(path))
        return assets

    def resolve(self, name: str) -> Path:
        """
        Resolve an artifact name to its path.

        Raises:
            ArtifactNotFound: If the name is unsafe or no such artifact exists
        """
        if not is_safe_file_name(name) or name.startswith(TEMP_PREFIX):
            raise ArtifactNotFound(f"Asset not found: {name}")
        path = self.root / name
        if not path.is_file():
            raise ArtifactNotFound(f"Asset not found: {name}")
        return path

    def _describe(self, path: Path) -> AssetInfo:
        stat = path.stat()
        name = path.name
        return AssetInfo(
            name=name,
            size=stat.st_size,
            formatted_size=format_file_size(stat.st_size),
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            url=asset_url(name),
            is_image=bool(IMAGE_PATTERN.search(name)),
            is_video=bool(VIDEO_PATTERN.search(name)),
            is_audio=bool(AUDIO_PATTERN.search(name)),
            is_text=bool(TEXT_PATTERN.search(name)),
        )


def media_type_for(name: str) -> Optional[str]:
    """
    Content type for an artifact, from the extension table first, then mimetypes.
    """
    suffix = Path(name).suffix.lower()
    if suffix in MEDIA_TYPES:
        return MEDIA_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(name)
    return guessed
