"""
ffprobe adapter — width, height and duration of the first video stream.

Output contract: one ``width,height,duration`` CSV line. Probing can be
limited to the first few seconds of the stream; resolution is
stream-level metadata, so the window does not change the answer.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from asset_normalizer.adapters.base import MediaProber
from asset_normalizer.adapters.media.runner import run_tool
from asset_normalizer.core.errors import ProbeUnavailable
from asset_normalizer.core.models.media import SourceDimensions
from asset_normalizer.core.services.probe import parse_probe_output


class FfprobeProber(MediaProber):
    """Prober backed by the ``ffprobe`` CLI.

    Args:
        binary: Executable name or path.
        timeout: Seconds allowed per probe.
        read_interval_seconds: Limit probing to the first N seconds
            (None probes the whole file).
    """

    def __init__(
        self,
        binary: str = "ffprobe",
        timeout: int = 15,
        read_interval_seconds: int | None = 5,
    ):
        self.binary = binary
        self.timeout = timeout
        self.read_interval_seconds = read_interval_seconds

    @property
    def name(self) -> str:
        return "ffprobe"

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def build_command(self, path: Path) -> list[str]:
        argv = [
            shutil.which(self.binary) or self.binary,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height,duration",
            "-of", "csv=p=0",
        ]
        if self.read_interval_seconds:
            argv += ["-read_intervals", f"%+{self.read_interval_seconds}"]
        argv.append(str(path))
        return argv

    def probe(self, path: Path) -> SourceDimensions:
        if not self.is_available():
            raise ProbeUnavailable(f"{self.binary} is not installed")

        receipt = run_tool(
            self.build_command(path),
            adapter=self.name,
            operation="probe",
            timeout=self.timeout,
        )
        if not receipt.ok:
            raise ProbeUnavailable(
                f"failed to get video metadata: {receipt.error}",
                diagnostic=receipt.diagnostic,
            )
        return parse_probe_output(receipt.output)
