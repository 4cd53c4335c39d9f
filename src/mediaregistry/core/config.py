from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

from mediaregistry.core.errors import ConfigurationError


@dataclass(frozen=True)
class AppPaths:
    project_root: Path
    registry_dir: Path
    index_dir: Path
    uploads_dir: Path


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str


@dataclass(frozen=True)
class RegistrySettings:
    cache_ttl_seconds: float = 60.0
    remote_max_results: int = 500
    remote_timeout_seconds: float = 30.0
    max_upload_bytes: int = 10 * 1024 * 1024
    debug: bool = False
    cloudinary: CloudinaryCredentials | None = None


DEFAULT_REGISTRY_DIRNAME = ".mediareg"


def load_paths(project_root: Path | None = None) -> AppPaths:
    root = (project_root or Path.cwd()).expanduser().resolve()

    home_raw = os.getenv("MEDIAREG_HOME")
    if home_raw:
        registry_dir = Path(home_raw).expanduser().resolve()
    else:
        registry_dir = root / DEFAULT_REGISTRY_DIRNAME

    return AppPaths(
        project_root=root,
        registry_dir=registry_dir,
        index_dir=registry_dir / "index",
        uploads_dir=registry_dir / "uploads",
    )


def load_settings() -> RegistrySettings:
    return RegistrySettings(
        cache_ttl_seconds=_read_float_env("MEDIAREG_CACHE_TTL_SECONDS", 60.0),
        remote_max_results=_read_int_env("MEDIAREG_REMOTE_MAX_RESULTS", 500),
        remote_timeout_seconds=_read_float_env("MEDIAREG_REMOTE_TIMEOUT_SECONDS", 30.0),
        max_upload_bytes=_read_int_env("MEDIAREG_MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
        debug=_read_bool_env("MEDIAREG_DEBUG", False),
        cloudinary=_load_cloudinary_credentials(),
    )


def parse_cloudinary_url(value: str) -> CloudinaryCredentials:
    parsed = urlparse(value.strip())
    if parsed.scheme != "cloudinary" or not parsed.hostname or not parsed.username or not parsed.password:
        raise ConfigurationError(
            "CLOUDINARY_URL must look like cloudinary://<api_key>:<api_secret>@<cloud_name>"
        )
    return CloudinaryCredentials(
        cloud_name=parsed.hostname,
        api_key=unquote(parsed.username),
        api_secret=unquote(parsed.password),
    )


def _load_cloudinary_credentials() -> CloudinaryCredentials | None:
    url = os.getenv("CLOUDINARY_URL")
    if url and url.strip():
        return parse_cloudinary_url(url)

    cloud_name = (os.getenv("CLOUDINARY_CLOUD_NAME") or "").strip()
    api_key = (os.getenv("CLOUDINARY_API_KEY") or "").strip()
    api_secret = (os.getenv("CLOUDINARY_API_SECRET") or "").strip()
    if not (cloud_name or api_key or api_secret):
        return None
    if not (cloud_name and api_key and api_secret):
        raise ConfigurationError(
            "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET must all be set"
        )
    return CloudinaryCredentials(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default
