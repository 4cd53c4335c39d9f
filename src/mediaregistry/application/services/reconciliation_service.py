from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from mediaregistry.core.time import now_millis
from mediaregistry.domain.models.asset import AssetRecord
from mediaregistry.domain.models.collection import CollectionSpec
from mediaregistry.infrastructure.remote.base import RemoteAsset, RemoteAssetStore

logger = logging.getLogger(__name__)


def merge(
    remote_records: Iterable[AssetRecord],
    local_records: Iterable[AssetRecord],
) -> list[AssetRecord]:
    """Merge remote and local records into one view keyed by ``url``.

    Remote records win on collision. The result is sorted newest first; ties
    keep insertion order (remote before local, then source order).
    """
    by_url: dict[str, AssetRecord] = {}
    for record in remote_records:
        if record.url and record.url not in by_url:
            by_url[record.url] = record
    for record in local_records:
        if record.url and record.url not in by_url:
            by_url[record.url] = record
    return sorted(by_url.values(), key=lambda r: r.timestamp, reverse=True)


def remote_to_records(assets: Iterable[RemoteAsset], now_ms: int) -> list[AssetRecord]:
    records: list[AssetRecord] = []
    for asset in assets:
        if not asset.url:
            continue
        records.append(
            AssetRecord(
                url=asset.url,
                remote_id=asset.remote_id or None,
                timestamp=asset.timestamp if asset.timestamp is not None else now_ms,
            )
        )
    return records


class ReconciliationService:
    def __init__(
        self,
        remote_store: RemoteAssetStore,
        max_results: int = 500,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.remote_store = remote_store
        self.max_results = max_results
        self._clock = clock

    def fetch_remote(self, spec: CollectionSpec) -> list[AssetRecord] | None:
        """List the remote store for ``spec``; ``None`` means the listing failed."""
        try:
            assets = self.remote_store.list(spec.list_folder, max_results=self.max_results)
        except Exception as exc:
            logger.warning(
                "Remote listing for '%s' failed, serving local index only: %s",
                spec.name,
                exc,
            )
            return None
        records = remote_to_records(assets, self._clock())
        logger.debug("Fetched %d remote assets for '%s'", len(records), spec.name)
        return records

    def reconcile(self, spec: CollectionSpec, local_records: list[AssetRecord]) -> tuple[list[AssetRecord], bool]:
        """Return the merged view and whether the remote listing succeeded."""
        if not spec.merge_remote:
            return merge([], local_records), True
        remote_records = self.fetch_remote(spec)
        if remote_records is None:
            return merge([], local_records), False
        return merge(remote_records, local_records), True
