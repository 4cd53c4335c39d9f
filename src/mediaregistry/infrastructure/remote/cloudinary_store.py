from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

import httpx

from mediaregistry.core.config import CloudinaryCredentials
from mediaregistry.core.errors import UpstreamError
from mediaregistry.core.hashing import sign_request_params
from mediaregistry.core.time import iso_to_millis
from mediaregistry.infrastructure.remote.base import RemoteAsset, UploadResult

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"
# Admin API hard limit per page.
MAX_PAGE_SIZE = 500


class CloudinaryStore:
    """Remote asset store backed by the Cloudinary REST API."""

    def __init__(
        self,
        credentials: CloudinaryCredentials,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        base_url: str = API_BASE_URL,
    ) -> None:
        self.credentials = credentials
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/{credentials.cloud_name}",
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def upload(self, path: Path, *, folder: str, resource_kind: str) -> UploadResult:
        params = self._signed_params({"folder": folder})
        try:
            with path.open("rb") as fh:
                response = self._client.post(
                    f"/{resource_kind}/upload",
                    data=params,
                    files={"file": (path.name, fh)},
                )
        except OSError as exc:
            raise UpstreamError(f"Could not read upload file {path}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Upload to remote store failed: {exc}") from exc

        payload = self._json_or_raise(response, "upload")
        url = payload.get("secure_url") or payload.get("url")
        public_id = payload.get("public_id")
        if not url or not public_id:
            raise UpstreamError("Remote store upload response is missing secure_url or public_id")
        return UploadResult(url=str(url), remote_id=str(public_id))

    def delete(self, remote_id: str, resource_kind: str) -> None:
        params = self._signed_params({"public_id": remote_id})
        try:
            response = self._client.post(f"/{resource_kind}/destroy", data=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Delete of '{remote_id}' failed: {exc}") from exc

        payload = self._json_or_raise(response, "delete")
        result = payload.get("result")
        if result == "not found":
            logger.debug("Remote object %s was already absent", remote_id)
            return
        if result != "ok":
            raise UpstreamError(f"Remote store refused to delete '{remote_id}': {result!r}")

    def list(
        self,
        folder: str | None,
        *,
        max_results: int,
        resource_kind: str = "image",
    ) -> list[RemoteAsset]:
        assets: list[RemoteAsset] = []
        cursor: str | None = None
        while len(assets) < max_results:
            params: dict[str, Any] = {"max_results": min(MAX_PAGE_SIZE, max_results - len(assets))}
            if folder:
                params["type"] = "upload"
                params["prefix"] = f"{folder.rstrip('/')}/"
            if cursor:
                params["next_cursor"] = cursor
            try:
                response = self._client.get(
                    f"/resources/{resource_kind}",
                    params=params,
                    auth=(self.credentials.api_key, self.credentials.api_secret),
                )
            except httpx.HTTPError as exc:
                raise UpstreamError(f"Listing remote assets failed: {exc}") from exc

            payload = self._json_or_raise(response, "list")
            for item in payload.get("resources") or []:
                asset = self._to_asset(item)
                if asset is not None:
                    assets.append(asset)
            cursor = payload.get("next_cursor")
            if not cursor:
                break
        return assets[:max_results]

    def _signed_params(self, params: dict[str, Any]) -> dict[str, Any]:
        signed = dict(params)
        signed["timestamp"] = str(int(time.time()))
        signed["signature"] = sign_request_params(signed, self.credentials.api_secret)
        signed["api_key"] = self.credentials.api_key
        return signed

    @staticmethod
    def _json_or_raise(response: httpx.Response, action: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.is_error:
            message = ""
            if isinstance(payload, dict):
                error = payload.get("error")
                if isinstance(error, dict):
                    message = str(error.get("message") or "")
            raise UpstreamError(
                f"Remote store {action} failed with HTTP {response.status_code}"
                + (f": {message}" if message else "")
            )
        if not isinstance(payload, dict):
            raise UpstreamError(f"Remote store {action} returned an unexpected payload")
        return payload

    @staticmethod
    def _to_asset(item: Any) -> RemoteAsset | None:
        if not isinstance(item, dict):
            return None
        url = item.get("secure_url") or item.get("url")
        if not url:
            return None
        timestamp: int | None = None
        created_at = item.get("created_at")
        if isinstance(created_at, str) and created_at:
            try:
                timestamp = iso_to_millis(created_at)
            except ValueError:
                logger.debug("Unparseable created_at %r for %s", created_at, url)
        return RemoteAsset(url=str(url), remote_id=item.get("public_id"), timestamp=timestamp)
