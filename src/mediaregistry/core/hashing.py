from __future__ import annotations

import hashlib
from collections.abc import Mapping


def compute_bytes_digest(data: bytes, alg: str = "sha256") -> str:
    h = hashlib.new(alg)
    h.update(data)
    return h.hexdigest()


def sign_request_params(params: Mapping[str, object], secret: str, alg: str = "sha1") -> str:
    """Sign request parameters the way Cloudinary expects.

    Parameters are sorted by key, joined as ``key=value`` pairs with ``&``,
    suffixed with the API secret and hashed. Empty values are skipped.
    """
    pairs = [f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")]
    payload = "&".join(pairs) + secret
    return compute_bytes_digest(payload.encode("utf-8"), alg)
