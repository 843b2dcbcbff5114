"""
Local directory uploader — stores processed assets under a root folder.

Stands in for an object store: keys map to relative paths, existing
files are never overwritten (a numbered suffix is appended), and the
returned URL is ``base_url/key`` or a ``file://`` URI when no base URL
is configured.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from asset_normalizer.adapters.base import BlobUploader

logger = logging.getLogger(__name__)


class LocalDirectoryUploader(BlobUploader):
    """Store uploads under ``root``.

    Args:
        root: Directory that receives the files (created on demand).
        base_url: Public prefix for returned URLs; empty for file:// URIs.
    """

    def __init__(self, root: Path | str, base_url: str = ""):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "local"

    def resolve_key(self, object_key: str) -> Path:
        """Map a key to a path under root.

        Raises:
            ValueError: empty key, absolute key, or a key escaping root.
        """
        key = PurePosixPath(object_key.replace("\\", "/"))
        if not object_key.strip() or key.is_absolute() or ".." in key.parts:
            raise ValueError(f"Invalid object key: {object_key!r}")

        root = self.root.resolve()
        target = (root / Path(*key.parts)).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Invalid object key: {object_key!r}")
        return target

    def upload(self, stream: BinaryIO, object_key: str) -> str:
        target = self.resolve_key(object_key)
        target.parent.mkdir(parents=True, exist_ok=True)

        # Exclusive create claims the name; concurrent uploads move on to the next suffix
        counter = 0
        while True:
            dest = target if counter == 0 else target.with_name(f"{target.stem}_{counter}{target.suffix}")
            try:
                fh = open(dest, "xb")
            except FileExistsError:
                counter += 1
                continue
            break

        try:
            with fh:
                shutil.copyfileobj(stream, fh)
        except OSError:
            dest.unlink(missing_ok=True)
            raise

        rel = dest.relative_to(self.root.resolve()).as_posix()
        logger.info("Stored %s (%s bytes)", rel, f"{dest.stat().st_size:,}")

        if self.base_url:
            return f"{self.base_url}/{rel}"
        return dest.as_uri()
