"""Index of one chunk namespace: which chunk indices are stored, and where."""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from common.types import ChunkRecord

logger = logging.getLogger(__name__)

TEMP_PREFIX = "."

_INDEX_PATTERN = re.compile(r"^[0-9]+$")


def record_name(fingerprint: str, index: int) -> str:
    """
    Get the file name of a chunk record.

    Args:
        fingerprint: Namespace fingerprint
        index: Chunk index

    Returns:
        ``<fingerprint>-<index>``
    """
    return f"{fingerprint}-{index}"


def parse_record_name(name: str, fingerprint: str) -> Optional[int]:
    """
    Recover the chunk index from a record file name.

    Args:
        name: File name found in the namespace directory
        fingerprint: Fingerprint the namespace belongs to

    Returns:
        The chunk index, or None if the name is not a record of this fingerprint
    """
    prefix = f"{fingerprint}-"
    if not name.startswith(prefix):
        return None
    suffix = name[len(prefix):]
    if not _INDEX_PATTERN.match(suffix):
        return None
    return int(suffix)


@dataclass
class NamespaceIndex:
    """
    Snapshot of a chunk namespace.

    This is the single view of chunk presence shared by the resume query and
    the merge engine; directory names are parsed here and nowhere else.
    """
    fingerprint: str
    exists: bool = False
    records: List[ChunkRecord] = field(default_factory=list)
    unrecognized: List[str] = field(default_factory=list)

    @classmethod
    def scan(cls, namespace_dir: Path, fingerprint: str) -> "NamespaceIndex":
        """
        Build the index by listing a namespace directory.

        Hidden entries are in-flight temporary writes and are skipped.

        Args:
            namespace_dir: Directory holding the fingerprint's chunk records
            fingerprint: Fingerprint the namespace belongs to

        Returns:
            NamespaceIndex (``exists`` is False if the directory is absent)

        Raises:
            OSError: If the directory cannot be listed
        """
        if not namespace_dir.exists():
            return cls(fingerprint=fingerprint)

        index = cls(fingerprint=fingerprint, exists=True)
        for entry in sorted(namespace_dir.iterdir()):
            if entry.name.startswith(TEMP_PREFIX):
                continue
            chunk_index = parse_record_name(entry.name, fingerprint) if entry.is_file() else None
            if chunk_index is None:
                logger.warning(f"Unrecognized entry {entry.name!r} in namespace {fingerprint}")
                index.unrecognized.append(entry.name)
                continue
            index.records.append(ChunkRecord(fingerprint=fingerprint, index=chunk_index, path=entry))
        return index

    def count(self) -> int:
        """Number of entries in the namespace, recognized or not."""
        return len(self.records) + len(self.unrecognized)

    def indices(self) -> List[int]:
        """Sorted distinct chunk indices present in the namespace."""
        return sorted({record.index for record in self.records})

    def duplicates(self) -> Dict[int, List[str]]:
        """Indices claimed by more than one record, with the record names."""
        by_index: Dict[int, List[str]] = defaultdict(list)
        for record in self.records:
            by_index[record.index].append(record.path.name)
        return {i: names for i, names in by_index.items() if len(names) > 1}

    def missing(self, total: int) -> List[int]:
        """Indices in ``0..total-1`` that have no record."""
        present = set(self.indices())
        return [i for i in range(total) if i not in present]

    def ordered(self) -> List[ChunkRecord]:
        """Records sorted ascending by chunk index."""
        return sorted(self.records, key=lambda record: record.index)
