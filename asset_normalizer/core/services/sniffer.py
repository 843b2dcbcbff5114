"""
Type sniffing — classify uploads as image, video, or other.

Classification is by magic-byte signature (``filetype``). The video
extension table is only a cheap pre-filter for callers that have a
filename but no bytes yet; it never overrides a signature match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import filetype

from asset_normalizer.core.errors import UnknownFormat

logger = logging.getLogger(__name__)

# Bytes needed to see every signature filetype knows about
SNIFF_BYTES = 261

VIDEO_EXTENSIONS = frozenset({
    ".mp4", ".mov", ".avi", ".wmv", ".flv", ".webm", ".mkv", ".m4v",
    ".3gp", ".ogg", ".ogv", ".mpg", ".mpeg", ".ts", ".mts", ".vob",
    ".divx", ".m2ts", ".mxf", ".asf", ".rm", ".rmvb", ".dv", ".f4v",
})

MediaKind = Literal["image", "video", "other"]


@dataclass(frozen=True)
class Classification:
    kind: MediaKind
    mime: str | None = None
    by: Literal["signature", "extension", "none"] = "none"

    @property
    def known(self) -> bool:
        return self.mime is not None


def sniff_mime(head: bytes, *, at_eof: bool = False) -> str | None:
    """MIME type from the file signature, or None when rejected.

    Args:
        head: The first bytes of the file (at least ``SNIFF_BYTES``).
        at_eof: ``head`` is the whole file, so a shorter prefix is fine.

    Returns:
        MIME string, or None if too few bytes were supplied or no
        signature matched.
    """
    if not head:
        return None
    if len(head) < SNIFF_BYTES and not at_eof:
        return None

    kind = filetype.guess(bytes(head[:SNIFF_BYTES]))
    if kind is None:
        return None
    return kind.mime


def has_video_extension(filename: str) -> bool:
    """Fast pre-filter: does the filename carry a known video extension?"""
    return Path(filename).suffix.lower() in VIDEO_EXTENSIONS


def _kind_for_mime(mime: str) -> MediaKind:
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return "other"


def classify(head: bytes, filename: str = "", *, at_eof: bool = False) -> Classification:
    """Classify content, signature first, extension only as a last resort."""
    mime = sniff_mime(head, at_eof=at_eof)
    if mime is not None:
        result = Classification(kind=_kind_for_mime(mime), mime=mime, by="signature")
    elif filename and has_video_extension(filename):
        result = Classification(kind="video", by="extension")
    else:
        result = Classification(kind="other")

    logger.debug("Classified %s as %s (%s, by %s)", filename or "<bytes>", result.kind, result.mime, result.by)
    return result


def require_known(classification: Classification) -> Classification:
    """Reject content no signature matched, for callers that won't pass it through."""
    if classification.mime is None and classification.by != "extension":
        raise UnknownFormat("no known file signature")
    return classification
