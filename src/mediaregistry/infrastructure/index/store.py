from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from mediaregistry.core.errors import StorageError
from mediaregistry.core.files import ensure_directory, write_text_atomic
from mediaregistry.core.time import now_millis
from mediaregistry.domain.models.asset import AssetRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class PersistedIndex:
    """Ordered asset records, one JSON file per collection.

    Every save rewrites the whole file. Callers doing load-modify-save must
    hold ``locked(collection)`` for the full sequence and load with
    ``strict=True``, so an unreadable file is never replaced by a shorter one.
    """

    def __init__(self, base_dir: Path, clock: Callable[[], int] = now_millis) -> None:
        self.base_dir = base_dir
        self._clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, collection: str) -> Path:
        return self.base_dir / f"{collection}.json"

    @contextmanager
    def locked(self, collection: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(collection, threading.Lock())
        with lock:
            yield

    def ensure_collection(self, collection: str) -> bool:
        path = self.path_for(collection)
        if path.exists():
            return False
        self.save(collection, [])
        return True

    def load(self, collection: str, *, strict: bool = False) -> list[AssetRecord]:
        """Return the persisted records for ``collection``.

        A missing or blank file is empty. Any other unreadable file is logged
        and read as empty, unless ``strict`` is set, in which case it raises
        ``StorageError``.
        """
        path = self.path_for(collection)
        if not path.exists():
            return []

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            return self._unreadable(path, f"could not be read: {exc}", strict)
        if not text.strip():
            return []

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            return self._unreadable(path, f"is not valid JSON: {exc}", strict)

        entries = self._entries_from_document(parsed)
        if entries is None:
            if isinstance(parsed, dict) and parsed.get("schemaVersion") == SCHEMA_VERSION:
                problem = "has no records array"
            elif isinstance(parsed, dict):
                problem = f"has unsupported schema version {parsed.get('schemaVersion')!r}"
            else:
                problem = "is not a JSON array or object"
            return self._unreadable(path, problem, strict)

        default_timestamp = self._clock()
        records: list[AssetRecord] = []
        for entry in entries:
            record = AssetRecord.from_dict(entry, default_timestamp)
            if record is None:
                logger.debug("Skipping index entry without url in %s: %r", path, entry)
                continue
            records.append(record)
        return records

    def save(self, collection: str, records: list[AssetRecord]) -> None:
        path = self.path_for(collection)
        document = {
            "schemaVersion": SCHEMA_VERSION,
            "records": [record.to_dict() for record in records],
        }
        try:
            ensure_directory(self.base_dir)
            write_text_atomic(path, json.dumps(document, indent=2, ensure_ascii=False) + "\n")
        except OSError as exc:
            raise StorageError(f"Could not write index for collection '{collection}': {exc}") from exc

    @staticmethod
    def _unreadable(path: Path, problem: str, strict: bool) -> list[AssetRecord]:
        if strict:
            raise StorageError(f"Index {path} {problem}; refusing to overwrite it")
        logger.warning("Index %s %s, treating as empty", path, problem)
        return []

    @staticmethod
    def _entries_from_document(parsed: object) -> list[object] | None:
        # Version 0 is the original bare-array layout.
        if isinstance(parsed, list):
            return parsed
        if isinstance(parsed, dict):
            if parsed.get("schemaVersion") == SCHEMA_VERSION and isinstance(parsed.get("records"), list):
                return parsed["records"]
        return None
