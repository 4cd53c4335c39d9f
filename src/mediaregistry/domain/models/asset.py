from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any

RESERVED_KEYS = frozenset({"url", "remoteId", "publicId", "timestamp"})


@dataclass(slots=True)
class AssetRecord:
    url: str
    remote_id: str | None
    timestamp: int
    extra: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> AssetRecord:
        return replace(self, extra=deepcopy(self.extra))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "remoteId": self.remote_id,
            "timestamp": self.timestamp,
        }
        for key, value in self.extra.items():
            if key not in RESERVED_KEYS:
                payload[key] = value
        return payload

    @classmethod
    def from_dict(cls, raw: Any, default_timestamp: int) -> AssetRecord | None:
        """Build a record from a persisted or remote JSON object.

        Returns ``None`` when the entry has no usable ``url``. The legacy
        ``publicId`` key is accepted in place of ``remoteId``.
        """
        if not isinstance(raw, dict):
            return None
        url = raw.get("url")
        if not isinstance(url, str) or not url.strip():
            return None

        remote_id = raw.get("remoteId")
        if remote_id is None:
            remote_id = raw.get("publicId")
        if remote_id is not None and not isinstance(remote_id, str):
            remote_id = str(remote_id)

        timestamp = _coerce_timestamp(raw.get("timestamp"))
        extra = {key: value for key, value in raw.items() if key not in RESERVED_KEYS}
        return cls(
            url=url,
            remote_id=remote_id or None,
            timestamp=timestamp if timestamp is not None else default_timestamp,
            extra=extra,
        )


def _coerce_timestamp(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
