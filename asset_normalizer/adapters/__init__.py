"""Adapters — external tools and storage behind narrow interfaces.

Public re-exports for convenient access. The ffmpeg/ffprobe bindings
live in ``asset_normalizer.adapters.media``.
"""

from asset_normalizer.adapters.base import BlobUploader, MediaEncoder, MediaProber
from asset_normalizer.adapters.mock import MockEncoder, MockProber
from asset_normalizer.adapters.storage.filesystem import LocalDirectoryUploader

__all__ = [
    "BlobUploader",
    "LocalDirectoryUploader",
    "MediaEncoder",
    "MediaProber",
    "MockEncoder",
    "MockProber",
]
