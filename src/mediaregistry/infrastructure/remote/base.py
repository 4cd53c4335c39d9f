from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mediaregistry.core.errors import UpstreamError

# https://res.cloudinary.com/<cloud>/<kind>/upload/v<version>/<public_id>.<ext>
_DELIVERY_URL_RE = re.compile(r"/upload/(?:v\d+/)?(.+?)(?:\.[^./]+)?$")


@dataclass(slots=True)
class UploadResult:
    url: str
    remote_id: str


@dataclass(slots=True)
class RemoteAsset:
    url: str
    remote_id: str | None
    timestamp: int | None


class RemoteAssetStore(Protocol):
    def upload(self, path: Path, *, folder: str, resource_kind: str) -> UploadResult: ...

    def delete(self, remote_id: str, resource_kind: str) -> None: ...

    def list(self, folder: str | None, *, max_results: int) -> list[RemoteAsset]: ...


class UnconfiguredRemoteStore:
    """Stand-in used when no remote credentials are configured."""

    message = "Remote asset store is not configured (set CLOUDINARY_URL)"

    def upload(self, path: Path, *, folder: str, resource_kind: str) -> UploadResult:
        raise UpstreamError(self.message)

    def delete(self, remote_id: str, resource_kind: str) -> None:
        raise UpstreamError(self.message)

    def list(self, folder: str | None, *, max_results: int) -> list[RemoteAsset]:
        raise UpstreamError(self.message)


def extract_remote_id(url: str) -> str | None:
    """Best-effort remote identifier from a delivery URL's trailing path segment."""
    path = url.split("?", 1)[0].split("#", 1)[0]
    match = _DELIVERY_URL_RE.search(path)
    if not match or not match.group(1):
        return None
    return match.group(1)
