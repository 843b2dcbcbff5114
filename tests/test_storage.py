"""
Tests for the local directory uploader.
"""

import io
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import pytest

from asset_normalizer.adapters.storage.filesystem import LocalDirectoryUploader


class TestUpload:
    def test_creates_root_and_returns_url(self, tmp_path: Path):
        uploader = LocalDirectoryUploader(tmp_path / "out", "https://cdn.example.com/")
        url = uploader.upload(io.BytesIO(b"data"), "a.jpg")

        assert url == "https://cdn.example.com/a.jpg"
        assert (tmp_path / "out" / "a.jpg").read_bytes() == b"data"

    def test_nested_key(self, tmp_path: Path):
        uploader = LocalDirectoryUploader(tmp_path, "https://cdn.example.com")
        url = uploader.upload(io.BytesIO(b"x"), "2024/05/clip.mp4")
        assert url == "https://cdn.example.com/2024/05/clip.mp4"
        assert (tmp_path / "2024" / "05" / "clip.mp4").exists()

    def test_never_overwrites(self, tmp_path: Path):
        uploader = LocalDirectoryUploader(tmp_path, "https://cdn.example.com")
        uploader.upload(io.BytesIO(b"first"), "a.jpg")
        second = uploader.upload(io.BytesIO(b"second"), "a.jpg")
        third = uploader.upload(io.BytesIO(b"third"), "a.jpg")

        assert second.endswith("/a_1.jpg")
        assert third.endswith("/a_2.jpg")
        assert (tmp_path / "a.jpg").read_bytes() == b"first"

    def test_concurrent_uploads_get_distinct_files(self, tmp_path: Path):
        uploader = LocalDirectoryUploader(tmp_path, "https://cdn.example.com")
        workers = 8
        barrier = threading.Barrier(workers)

        def upload(n: int) -> str:
            barrier.wait()
            return uploader.upload(io.BytesIO(f"payload-{n}".encode()), "a.jpg")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            urls = list(pool.map(upload, range(workers)))

        assert len(set(urls)) == workers
        stored = sorted(p.read_bytes() for p in tmp_path.glob("a*.jpg"))
        assert stored == sorted(f"payload-{n}".encode() for n in range(workers))

    def test_name_taken_between_check_and_write(self, tmp_path: Path):
        uploader = LocalDirectoryUploader(tmp_path, "https://cdn.example.com")
        real_open = open

        def racing_open(path, mode="r", *args, **kwargs):
            # Another writer creates the file just before this one opens it
            if mode == "xb" and Path(path).name == "a.jpg":
                Path(path).write_bytes(b"other")
            return real_open(path, mode, *args, **kwargs)

        with patch("builtins.open", racing_open):
            url = uploader.upload(io.BytesIO(b"mine"), "a.jpg")

        assert url.endswith("/a_1.jpg")
        assert (tmp_path / "a.jpg").read_bytes() == b"other"
        assert (tmp_path / "a_1.jpg").read_bytes() == b"mine"

    def test_file_uri_without_base_url(self, tmp_path: Path):
        url = LocalDirectoryUploader(tmp_path).upload(io.BytesIO(b"x"), "a.png")
        assert url.startswith("file://")
        assert url.endswith("/a.png")

    def test_name(self, tmp_path: Path):
        assert LocalDirectoryUploader(tmp_path).name == "local"


class TestKeys:
    @pytest.mark.parametrize("key", ["", "   ", "/etc/passwd", "../escape.jpg", "a/../../b.jpg", "..\\win.jpg"])
    def test_rejects(self, tmp_path: Path, key: str):
        with pytest.raises(ValueError, match="Invalid object key"):
            LocalDirectoryUploader(tmp_path).upload(io.BytesIO(b"x"), key)

    def test_resolves_under_root(self, tmp_path: Path):
        path = LocalDirectoryUploader(tmp_path).resolve_key("sub/a.jpg")
        assert path == (tmp_path / "sub" / "a.jpg").resolve()
