from pathlib import Path

from formvault.services.temp_urls import TemporaryUrlRegistry


def test_create_writes_file_and_returns_file_url(tmp_path: Path):
    registry = TemporaryUrlRegistry(tmp_path / "t")

    url = registry.create(b"jpeg", suffix=".jpg")

    assert url.startswith("file://")
    assert registry.is_active(url)
    files = list((tmp_path / "t").iterdir())
    assert len(files) == 1
    assert files[0].read_bytes() == b"jpeg"


def test_revoke_is_idempotent(tmp_path: Path):
    registry = TemporaryUrlRegistry(tmp_path)
    url = registry.create(b"x")

    assert registry.revoke(url) is True
    assert registry.revoke(url) is False
    assert registry.revoke("file:///never/created") is False
    assert list(tmp_path.iterdir()) == []


def test_revoke_all(tmp_path: Path):
    registry = TemporaryUrlRegistry(tmp_path)
    for _ in range(3):
        registry.create(b"x")

    assert registry.revoke_all() == 3
    assert registry.active_count == 0
