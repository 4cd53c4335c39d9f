from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from mediaregistry.core.errors import StorageError
from mediaregistry.domain.models.asset import AssetRecord
from mediaregistry.infrastructure.index.store import SCHEMA_VERSION, PersistedIndex


def _index(tmp_path: Path) -> PersistedIndex:
    return PersistedIndex(tmp_path / "index", clock=lambda: 5_000)


def test_load_missing_file_returns_empty(tmp_path: Path) -> None:
    assert _index(tmp_path).load("gallery") == []


def test_load_corrupt_or_blank_file_returns_empty(tmp_path: Path) -> None:
    index = _index(tmp_path)
    path = index.path_for("gallery")
    path.parent.mkdir(parents=True)

    path.write_text("{not json", encoding="utf-8")
    assert index.load("gallery") == []

    path.write_text("   \n", encoding="utf-8")
    assert index.load("gallery") == []

    path.write_text('"just a string"', encoding="utf-8")
    assert index.load("gallery") == []


def test_load_reads_legacy_bare_array(tmp_path: Path) -> None:
    index = _index(tmp_path)
    path = index.path_for("gallery")
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            [
                {"url": "https://cdn.example/a.jpg", "publicId": "gallery/a", "timestamp": 100},
                {"url": "https://cdn.example/b.jpg"},
                {"publicId": "no-url"},
                "garbage",
            ]
        ),
        encoding="utf-8",
    )

    records = index.load("gallery")

    assert [r.url for r in records] == ["https://cdn.example/a.jpg", "https://cdn.example/b.jpg"]
    assert records[0].remote_id == "gallery/a"
    assert records[0].timestamp == 100
    assert records[1].remote_id is None
    assert records[1].timestamp == 5_000


def test_unknown_schema_version_is_treated_as_empty(tmp_path: Path) -> None:
    index = _index(tmp_path)
    path = index.path_for("gallery")
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"schemaVersion": 99, "records": [{"url": "x"}]}), encoding="utf-8")
    assert index.load("gallery") == []


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '[{"url": "a"},]',
        '"just a string"',
        json.dumps({"schemaVersion": 99, "records": [{"url": "x"}]}),
        json.dumps({"schemaVersion": 1, "records": {"url": "x"}}),
    ],
)
def test_strict_load_raises_instead_of_reading_empty(tmp_path: Path, raw: str) -> None:
    index = _index(tmp_path)
    path = index.path_for("gallery")
    path.parent.mkdir(parents=True)
    path.write_text(raw, encoding="utf-8")

    with pytest.raises(StorageError):
        index.load("gallery", strict=True)
    assert path.read_text(encoding="utf-8") == raw


def test_strict_load_accepts_missing_blank_and_legacy_files(tmp_path: Path) -> None:
    index = _index(tmp_path)
    assert index.load("gallery", strict=True) == []

    path = index.path_for("gallery")
    path.parent.mkdir(parents=True)
    path.write_text("\n", encoding="utf-8")
    assert index.load("gallery", strict=True) == []

    path.write_text(json.dumps([{"url": "a", "timestamp": 1}]), encoding="utf-8")
    assert [r.url for r in index.load("gallery", strict=True)] == ["a"]


def test_save_rewrites_whole_file_with_schema_version(tmp_path: Path) -> None:
    index = _index(tmp_path)
    index.save("projects", [AssetRecord(url="u1", remote_id="r1", timestamp=1)])
    index.save(
        "projects",
        [
            AssetRecord(url="u2", remote_id=None, timestamp=2, extra={"title": "Bridge", "category": "Civil"}),
        ],
    )

    document = json.loads(index.path_for("projects").read_text(encoding="utf-8"))
    assert document["schemaVersion"] == SCHEMA_VERSION
    assert document["records"] == [
        {"url": "u2", "remoteId": None, "timestamp": 2, "title": "Bridge", "category": "Civil"}
    ]

    reloaded = index.load("projects")
    assert reloaded[0].extra == {"title": "Bridge", "category": "Civil"}
    assert not list(index.base_dir.glob(".*.tmp"))


def test_save_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "index"
    blocker.write_text("this is a file, not a directory", encoding="utf-8")
    index = PersistedIndex(blocker)

    with pytest.raises(StorageError):
        index.save("gallery", [])


def test_ensure_collection_creates_file_once(tmp_path: Path) -> None:
    index = _index(tmp_path)
    assert index.ensure_collection("gallery") is True
    assert index.ensure_collection("gallery") is False
    assert index.load("gallery") == []


def test_locked_sequences_do_not_lose_updates(tmp_path: Path) -> None:
    index = _index(tmp_path)
    index.save("gallery", [])

    def _append(n: int) -> None:
        for i in range(20):
            with index.locked("gallery"):
                records = index.load("gallery")
                records.append(AssetRecord(url=f"w{n}-{i}", remote_id=None, timestamp=i))
                index.save("gallery", records)

    threads = [threading.Thread(target=_append, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(index.load("gallery")) == 80
