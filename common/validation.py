"""Validation of values that become path segments in the storage root."""

import re
from typing import Optional
from urllib.parse import quote

from common.constants import ASSETS_URL_PREFIX, MAX_FILE_NAME_LENGTH, MAX_FINGERPRINT_LENGTH

# No "-", so a namespace directory can never share a name with a "<fingerprint>-<fileName>" artifact.
_FINGERPRINT_PATTERN = re.compile(r"^[0-9A-Za-z_]+$")


def normalize_fingerprint(fingerprint: Optional[str]) -> Optional[str]:
    """
    Normalize a fingerprint for use as a directory name.

    Args:
        fingerprint: Raw fingerprint as received from a client

    Returns:
        Lower-cased fingerprint, or None if it is not safe as a path segment
    """
    if fingerprint is None:
        return None
    value = fingerprint.strip()
    if not value or len(value) > MAX_FINGERPRINT_LENGTH:
        return None
    if not _FINGERPRINT_PATTERN.match(value):
        return None
    return value.lower()


def artifact_name(fingerprint: str, file_name: str) -> str:
    """Deterministic name of the merged artifact: ``<fingerprint>-<fileName>``."""
    return f"{fingerprint}-{file_name}"


def asset_url(name: str) -> str:
    """Public URL of an artifact."""
    return f"{ASSETS_URL_PREFIX}/{quote(name)}"


def is_safe_file_name(file_name: Optional[str]) -> bool:
    """
    Check that a client supplied file name is a bare name.

    Rejects empty names, ``.``/``..``, names with path separators or NUL,
    and names longer than a file system name allows.
    """
    if not file_name or not file_name.strip():
        return False
    if file_name in (".", ".."):
        return False
    if any(sep in file_name for sep in ("/", "\\", "\x00")):
        return False
    if len(file_name.encode("utf-8")) > MAX_FILE_NAME_LENGTH:
        return False
    return True
