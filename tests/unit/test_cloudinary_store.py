from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

from mediaregistry.core.config import CloudinaryCredentials
from mediaregistry.core.errors import UpstreamError
from mediaregistry.core.hashing import sign_request_params
from mediaregistry.infrastructure.remote.base import extract_remote_id
from mediaregistry.infrastructure.remote.cloudinary_store import CloudinaryStore

_CREDS = CloudinaryCredentials(cloud_name="demo", api_key="key123", api_secret="shh")


def _store(handler) -> CloudinaryStore:
    return CloudinaryStore(_CREDS, transport=httpx.MockTransport(handler))


def test_upload_posts_signed_multipart_request(tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.read()
        return httpx.Response(
            200,
            json={
                "public_id": "gallery/abc",
                "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/gallery/abc.jpg",
            },
        )

    source = tmp_path / "abc.jpg"
    source.write_bytes(b"jpegbytes")

    result = _store(handler).upload(source, folder="gallery", resource_kind="image")

    assert result.remote_id == "gallery/abc"
    assert result.url.endswith("/gallery/abc.jpg")
    assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
    body = seen["body"]
    assert isinstance(body, bytes)
    assert b'name="folder"' in body
    assert b"gallery" in body
    assert b'name="api_key"' in body
    assert b'name="signature"' in body
    assert b"jpegbytes" in body


def test_upload_http_error_raises_upstream_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(420, json={"error": {"message": "Rate limit exceeded"}})

    source = tmp_path / "a.png"
    source.write_bytes(b"png")

    with pytest.raises(UpstreamError, match="Rate limit exceeded"):
        _store(handler).upload(source, folder="gallery", resource_kind="image")


def test_upload_network_failure_raises_upstream_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    source = tmp_path / "a.png"
    source.write_bytes(b"png")

    with pytest.raises(UpstreamError):
        _store(handler).upload(source, folder="gallery", resource_kind="image")


def test_delete_signs_public_id() -> None:
    seen: dict[str, dict[str, list[str]]] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1_1/demo/raw/destroy"
        seen["form"] = parse_qs(request.read().decode("utf-8"))
        return httpx.Response(200, json={"result": "ok"})

    _store(handler).delete("resumes/cv.pdf", "raw")

    form = seen["form"]
    assert form["public_id"] == ["resumes/cv.pdf"]
    assert form["api_key"] == ["key123"]
    expected = sign_request_params(
        {"public_id": "resumes/cv.pdf", "timestamp": form["timestamp"][0]},
        "shh",
    )
    assert form["signature"] == [expected]


def test_delete_not_found_is_success_and_other_results_fail() -> None:
    _store(lambda request: httpx.Response(200, json={"result": "not found"})).delete("x", "image")

    with pytest.raises(UpstreamError):
        _store(lambda request: httpx.Response(200, json={"result": "error"})).delete("x", "image")


def test_list_follows_cursor_until_limit() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "next_cursor" not in request.url.params:
            return httpx.Response(
                200,
                json={
                    "resources": [
                        {
                            "public_id": "gallery/one",
                            "secure_url": "https://cdn/one.jpg",
                            "created_at": "2024-01-01T00:00:00Z",
                        },
                        {"public_id": "gallery/broken"},
                    ],
                    "next_cursor": "page2",
                },
            )
        return httpx.Response(
            200,
            json={
                "resources": [
                    {"public_id": "gallery/two", "secure_url": "https://cdn/two.jpg", "created_at": "bad"},
                    {"public_id": "gallery/three", "secure_url": "https://cdn/three.jpg"},
                ],
                "next_cursor": "page3",
            },
        )

    assets = _store(handler).list("gallery", max_results=2)

    assert [a.remote_id for a in assets] == ["gallery/one", "gallery/two"]
    assert assets[0].timestamp == 1704067200000
    assert assets[1].timestamp is None
    assert len(requests) == 2
    first = requests[0]
    assert first.url.path == "/v1_1/demo/resources/image"
    assert first.url.params["prefix"] == "gallery/"
    assert first.url.params["type"] == "upload"
    assert first.headers["authorization"].startswith("Basic ")
    assert requests[1].url.params["next_cursor"] == "page2"


def test_list_without_folder_has_no_prefix() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"resources": []})

    assert _store(handler).list(None, max_results=500) == []
    assert "prefix" not in seen[0].url.params
    assert seen[0].url.params["max_results"] == "500"


def test_list_auth_failure_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid credentials"}})

    with pytest.raises(UpstreamError, match="401"):
        _store(handler).list(None, max_results=10)


def test_extract_remote_id_from_delivery_urls() -> None:
    assert (
        extract_remote_id("https://res.cloudinary.com/demo/image/upload/v1712345678/gallery/sunset.jpg")
        == "gallery/sunset"
    )
    assert extract_remote_id("https://res.cloudinary.com/demo/image/upload/sample.png?x=1") == "sample"
    assert extract_remote_id("https://res.cloudinary.com/demo/raw/upload/v2/resumes/cv") == "resumes/cv"
    assert extract_remote_id("https://example.com/static/pic.jpg") is None
