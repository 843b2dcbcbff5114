"""
Metadata probing — parse prober output and report remote aspect ratios.

The prober adapter (``adapters.media.ffprobe``) runs the external tool;
this module owns the text contract (``width,height,duration``) and the
remote-URL report built on top of it.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import urllib.request
from pathlib import Path

from asset_normalizer.adapters.base import MediaProber
from asset_normalizer.core.errors import ProbeFormatError, ProbeUnavailable
from asset_normalizer.core.models.media import AspectRatioReport, FormatCatalog, SourceDimensions
from asset_normalizer.core.services.formats import detect_format, ratio_label

logger = logging.getLogger(__name__)

# Enough of a remote file for the container header in the common case
REMOTE_PROBE_BYTES = 1024 * 1024


def _to_int(text: str) -> int:
    try:
        return max(0, int(text.strip()))
    except ValueError:
        return 0


def _to_float(text: str) -> float:
    try:
        value = float(text.strip())
    except ValueError:
        return 0.0
    return value if value > 0 and value != float("inf") else 0.0


def parse_probe_output(text: str) -> SourceDimensions:
    """Parse a ``width,height,duration`` line from the prober.

    Raises:
        ProbeFormatError: the line has fewer than three fields.

    Individual fields that don't parse (``N/A``) become 0.
    """
    line = next((ln.strip() for ln in text.splitlines() if ln.strip()), "")
    parts = line.split(",")
    if len(parts) < 3:
        raise ProbeFormatError(
            "unexpected probe output format",
            diagnostic=text.strip()[:500],
        )

    return SourceDimensions(
        width=_to_int(parts[0]),
        height=_to_int(parts[1]),
        duration_seconds=_to_float(parts[2]),
    )


def fetch_head(url: str, dest: Path, max_bytes: int = REMOTE_PROBE_BYTES, timeout: int = 30) -> int:
    """Download the first ``max_bytes`` of ``url`` into ``dest``. Returns bytes written."""
    req = urllib.request.Request(
        url,
        headers={
            "Range": f"bytes=0-{max_bytes}",
            "User-Agent": "asset-normalizer/0.1",
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            if status not in (200, 206):
                raise ProbeUnavailable(f"failed to download video, status code: {status}")
            data = resp.read(max_bytes + 1)
    except ProbeUnavailable:
        raise
    except (OSError, ValueError) as e:
        raise ProbeUnavailable(f"failed to download video: {e}") from e

    dest.write_bytes(data)
    return len(data)


def probe_remote(
    url: str,
    prober: MediaProber,
    catalog: FormatCatalog,
    *,
    max_bytes: int = REMOTE_PROBE_BYTES,
) -> AspectRatioReport:
    """Probe the head of a remote video and report its aspect ratio.

    The downloaded prefix lives in a temp directory that is always removed.

    Raises:
        ProbeUnavailable: download or probe failed.
        ProbeFormatError: the probe returned unusable dimensions.
    """
    logger.info("Getting aspect ratio for video at URL: %s", url)
    tmpdir = tempfile.mkdtemp(prefix="anorm_remote_")
    try:
        local = Path(tmpdir) / "remote.mp4"
        size = fetch_head(url, local, max_bytes=max_bytes)
        logger.debug("Fetched %s bytes of %s", f"{size:,}", url)

        dims = prober.probe(local)
        if not dims.known:
            raise ProbeFormatError(
                f"invalid video dimensions: width={dims.width}, height={dims.height}"
            )

        return AspectRatioReport(
            width=dims.width,
            height=dims.height,
            original_ratio=dims.width / dims.height,
            formatted_ratio=ratio_label(dims.width, dims.height),
            standard_format=detect_format(dims.width, dims.height, catalog),
            duration=dims.duration_seconds,
        )
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)
