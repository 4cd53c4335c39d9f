from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mediaregistry.application.services.reconciliation_service import ReconciliationService
from mediaregistry.core.errors import (
    NotFoundError,
    RegistryError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from mediaregistry.core.files import remove_file_quietly
from mediaregistry.core.time import now_millis
from mediaregistry.domain.models.asset import RESERVED_KEYS, AssetRecord
from mediaregistry.domain.models.collection import (
    DEFAULT_COLLECTIONS,
    DOCUMENTS_FOLDER,
    DOCUMENTS_RESOURCE_KIND,
    CollectionSpec,
)
from mediaregistry.infrastructure.cache.ttl_cache import TTLCache
from mediaregistry.infrastructure.index.store import PersistedIndex
from mediaregistry.infrastructure.remote.base import RemoteAssetStore, UploadResult, extract_remote_id

logger = logging.getLogger(__name__)

_POSITIONAL_RE = re.compile(r"[0-9]+")


@dataclass(slots=True)
class UploadedFile:
    """A file payload handed over by the caller.

    ``temporary`` marks artifacts the registry owns and must delete once the
    operation finishes, whatever its outcome.
    """

    path: Path
    filename: str | None = None
    temporary: bool = False


def resolve_identifier(records: list[AssetRecord], identifier: str) -> int | None:
    """Return the position of the record ``identifier`` refers to.

    Priority: positional index, exact ``remote_id``, exact ``url``, then a
    loose match where either string contains the other.
    """
    if _POSITIONAL_RE.fullmatch(identifier):
        position = int(identifier)
        if position < len(records):
            return position

    for position, record in enumerate(records):
        if record.remote_id is not None and record.remote_id == identifier:
            return position

    for position, record in enumerate(records):
        if record.url == identifier:
            return position

    for position, record in enumerate(records):
        if record.url and (identifier in record.url or record.url in identifier):
            return position

    return None


class RegistryService:
    def __init__(
        self,
        index: PersistedIndex,
        cache: TTLCache[list[AssetRecord]],
        remote_store: RemoteAssetStore,
        reconciliation: ReconciliationService,
        *,
        collections: Mapping[str, CollectionSpec] | None = None,
        max_upload_bytes: int | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.index = index
        self.cache = cache
        self.remote_store = remote_store
        self.reconciliation = reconciliation
        self.collections = dict(collections or DEFAULT_COLLECTIONS)
        self.max_upload_bytes = max_upload_bytes
        self._clock = clock

    def get_collection(self, name: str) -> CollectionSpec:
        spec = self.collections.get(name)
        if spec is None:
            raise NotFoundError(f"Unknown collection: {name}")
        return spec

    def read_collection(self, name: str) -> list[AssetRecord]:
        spec = self.get_collection(name)

        cached, fresh = self.cache.get(spec.name)
        if fresh and cached is not None:
            logger.debug("Cache hit for '%s'", spec.name)
            return [record.copy() for record in cached]

        logger.debug("Cache miss for '%s'", spec.name)
        generation = self.cache.generation(spec.name)
        local_records = self.index.load(spec.name)
        view, remote_ok = self.reconciliation.reconcile(spec, local_records)
        if remote_ok and not self.cache.set(spec.name, view, generation):
            logger.debug("Discarded view of '%s' computed before a write", spec.name)
        return [record.copy() for record in view]

    def create_asset(
        self,
        name: str,
        upload: UploadedFile | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> AssetRecord:
        try:
            spec = self.get_collection(name)
            self._validate_upload(upload)
            extra = self._build_metadata(spec, metadata)

            result = self._upload(upload, folder=spec.folder, resource_kind=spec.resource_kind)
            record = AssetRecord(
                url=result.url,
                remote_id=result.remote_id,
                timestamp=self._clock(),
                extra=extra,
            )

            try:
                with self.index.locked(spec.name):
                    records = self.index.load(spec.name, strict=True)
                    records.append(record)
                    self.index.save(spec.name, records)
            except StorageError:
                self._compensate_upload(spec, result)
                raise
            self.cache.invalidate(spec.name)

            logger.info("Created asset %s in '%s'", record.url, spec.name)
            return record
        finally:
            self._cleanup(upload)

    def upload_document(self, upload: UploadedFile | None) -> UploadResult:
        """Upload a standalone document; no index entry is kept."""
        try:
            self._validate_upload(upload)
            result = self._upload(upload, folder=DOCUMENTS_FOLDER, resource_kind=DOCUMENTS_RESOURCE_KIND)
            logger.info("Uploaded document %s", result.url)
            return result
        finally:
            self._cleanup(upload)

    def delete_asset(self, name: str, identifier: str) -> AssetRecord:
        spec = self.get_collection(name)
        identifier = (identifier or "").strip()
        if not identifier:
            raise ValidationError("Asset identifier is required")

        with self.index.locked(spec.name):
            records = self.index.load(spec.name, strict=True)
            position = resolve_identifier(records, identifier)
            if position is None:
                raise NotFoundError(f"Asset not found in '{spec.name}': {identifier}")
            removed = records.pop(position)
            self.index.save(spec.name, records)
        self.cache.invalidate(spec.name)

        self._delete_remote(spec, removed)
        # A read during the remote call may have cached a remote listing that still has it.
        self.cache.invalidate(spec.name)

        logger.info("Deleted asset %s from '%s'", removed.url, spec.name)
        return removed

    def initialize(self) -> list[str]:
        """Create empty index files for collections that have none yet."""
        created: list[str] = []
        for spec_name in self.collections:
            if self.index.ensure_collection(spec_name):
                created.append(spec_name)
        return created

    def _validate_upload(self, upload: UploadedFile | None) -> None:
        if upload is None or upload.path is None:
            raise ValidationError("No file payload provided")
        if not upload.path.is_file():
            raise ValidationError(f"Uploaded file not found: {upload.filename or upload.path}")
        if self.max_upload_bytes is not None:
            size = upload.path.stat().st_size
            if size > self.max_upload_bytes:
                limit_mb = self.max_upload_bytes / (1024 * 1024)
                raise ValidationError(f"File size too large. Maximum size is {limit_mb:g}MB")

    def _build_metadata(self, spec: CollectionSpec, metadata: Mapping[str, Any] | None) -> dict[str, Any]:
        supplied = dict(metadata or {})
        reserved = sorted(key for key in supplied if key in RESERVED_KEYS)
        if reserved:
            raise ValidationError(f"Reserved metadata keys cannot be set: {', '.join(reserved)}")

        extra: dict[str, Any] = {}
        for key, default in spec.metadata_defaults.items():
            value = supplied.pop(key, None)
            extra[key] = value if value not in (None, "") else default
        for key, value in supplied.items():
            if value is not None:
                extra[key] = value
        return extra

    def _upload(self, upload: UploadedFile, *, folder: str, resource_kind: str) -> UploadResult:
        try:
            return self.remote_store.upload(upload.path, folder=folder, resource_kind=resource_kind)
        except RegistryError:
            raise
        except Exception as exc:
            raise UpstreamError(f"Upload to remote store failed: {exc}") from exc

    def _compensate_upload(self, spec: CollectionSpec, result: UploadResult) -> None:
        try:
            self.remote_store.delete(result.remote_id, spec.resource_kind)
        except Exception as exc:
            logger.error(
                "Index write for '%s' failed and remote object %s could not be removed: %s",
                spec.name,
                result.remote_id,
                exc,
            )
        else:
            logger.error(
                "Index write for '%s' failed; removed uploaded remote object %s",
                spec.name,
                result.remote_id,
            )

    def _delete_remote(self, spec: CollectionSpec, record: AssetRecord) -> None:
        remote_id = record.remote_id or extract_remote_id(record.url)
        if not remote_id:
            logger.warning(
                "No remote identifier for %s in '%s'; remote object may be orphaned",
                record.url,
                spec.name,
            )
            return
        try:
            self.remote_store.delete(remote_id, spec.resource_kind)
        except Exception as exc:
            logger.warning(
                "Remote delete of %s for '%s' failed, object may be orphaned: %s",
                remote_id,
                spec.name,
                exc,
            )

    @staticmethod
    def _cleanup(upload: UploadedFile | None) -> None:
        if upload is not None and upload.temporary:
            remove_file_quietly(upload.path)
