from __future__ import annotations

import logging

from mediaregistry.application.services.reconciliation_service import ReconciliationService
from mediaregistry.application.services.registry_service import RegistryService
from mediaregistry.core.config import AppPaths, RegistrySettings
from mediaregistry.domain.models.asset import AssetRecord
from mediaregistry.infrastructure.cache.ttl_cache import TTLCache
from mediaregistry.infrastructure.index.store import PersistedIndex
from mediaregistry.infrastructure.remote.base import RemoteAssetStore, UnconfiguredRemoteStore
from mediaregistry.infrastructure.remote.cloudinary_store import CloudinaryStore

logger = logging.getLogger(__name__)


def build_remote_store(settings: RegistrySettings) -> RemoteAssetStore:
    if settings.cloudinary is None:
        logger.warning("No remote store credentials configured; reads will use the local index only")
        return UnconfiguredRemoteStore()
    return CloudinaryStore(settings.cloudinary, timeout_seconds=settings.remote_timeout_seconds)


def build_registry_service(
    paths: AppPaths,
    settings: RegistrySettings,
    remote_store: RemoteAssetStore | None = None,
) -> RegistryService:
    store = remote_store if remote_store is not None else build_remote_store(settings)
    cache: TTLCache[list[AssetRecord]] = TTLCache(ttl_seconds=settings.cache_ttl_seconds)
    return RegistryService(
        index=PersistedIndex(paths.index_dir),
        cache=cache,
        remote_store=store,
        reconciliation=ReconciliationService(store, max_results=settings.remote_max_results),
        max_upload_bytes=settings.max_upload_bytes,
    )
