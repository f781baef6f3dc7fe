"""
Storage Sinks
=============
Append-only record sink and key/blob store used for crawl output.

Layout of the file-backed implementations (under ``storage_dir``)::

    storage/
        dataset.jsonl            # one AggregateReport per line, per run
        key_value_store/
            analysis_report.json
            screenshot_1700000000000.png
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

REPORT_KEY = "analysis_report.json"

_UNSAFE_KEY_CHARS = re.compile(r"[^\w\-.]")


def sanitize_key(key: str) -> str:
    """Make *key* usable as a single file name."""
    cleaned = _UNSAFE_KEY_CHARS.sub("_", key).strip("._")
    if not cleaned:
        raise ValueError(f"Invalid storage key: {key!r}")
    return cleaned[:200]


class RecordSink(ABC):
    """Append-only sink of structured records."""

    @abstractmethod
    def append(self, record: dict) -> None:
        ...


class BlobStore(ABC):
    """Key → blob store."""

    @abstractmethod
    def put(
        self,
        key: str,
        value: Union[bytes, str],
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store *value* under *key*; returns the stored location."""
        ...


# ---------------------------------------------------------------------------
# File-backed implementations
# ---------------------------------------------------------------------------

class JsonlRecordSink(RecordSink):
    """Appends one JSON document per line to a file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, record: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        logger.info(f"[STORE] Record appended to {self.path}")


class DirectoryBlobStore(BlobStore):
    """Writes each blob to ``root/<key>``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def put(
        self,
        key: str,
        value: Union[bytes, str],
        content_type: str = "application/octet-stream",
    ) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / sanitize_key(key)
        if isinstance(value, str):
            path.write_text(value, encoding="utf-8")
        else:
            path.write_bytes(value)
        logger.info(f"[STORE] {key} ({content_type}) → {path.absolute()}")
        return str(path.absolute())


def open_storage(storage_dir: Union[str, Path]) -> Tuple[JsonlRecordSink, DirectoryBlobStore]:
    """File-backed sink + store rooted at *storage_dir*."""
    root = Path(storage_dir)
    return (
        JsonlRecordSink(root / "dataset.jsonl"),
        DirectoryBlobStore(root / "key_value_store"),
    )


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------

class MemoryRecordSink(RecordSink):
    def __init__(self):
        self.records: List[dict] = []

    def append(self, record: dict) -> None:
        self.records.append(record)


class MemoryBlobStore(BlobStore):
    def __init__(self):
        self.blobs: Dict[str, Tuple[Union[bytes, str], str]] = {}

    def put(
        self,
        key: str,
        value: Union[bytes, str],
        content_type: str = "application/octet-stream",
    ) -> str:
        self.blobs[key] = (value, content_type)
        return key

    def get(self, key: str) -> Optional[Union[bytes, str]]:
        entry = self.blobs.get(key)
        return entry[0] if entry else None
