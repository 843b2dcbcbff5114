"""
ffmpeg adapter — validation pass, transcode, and stream-copy trim.

Builds the command lines; ``runner.run_tool`` executes them. Failures
are returned as receipts for the video state machine to interpret.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from asset_normalizer.adapters.base import MediaEncoder
from asset_normalizer.adapters.media.runner import run_tool
from asset_normalizer.core.models.encode import EncodeParams
from asset_normalizer.core.models.receipt import ToolReceipt

logger = logging.getLogger(__name__)


class FfmpegEncoder(MediaEncoder):
    """Encoder backed by the ``ffmpeg`` CLI.

    Args:
        binary: Executable name or path.
        validate_timeout: Seconds allowed for the decode-only validation pass.
        encode_timeout: Seconds allowed per transcode or trim.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        validate_timeout: int = 60,
        encode_timeout: int = 120,
    ):
        self.binary = binary
        self.validate_timeout = validate_timeout
        self.encode_timeout = encode_timeout

    @property
    def name(self) -> str:
        return "ffmpeg"

    def binary_path(self) -> str | None:
        """Resolved executable path, or None if not on PATH."""
        return shutil.which(self.binary)

    def is_available(self) -> bool:
        return self.binary_path() is not None

    def _exe(self) -> str:
        return self.binary_path() or self.binary

    def validate_input(self, src: Path) -> ToolReceipt:
        argv = [self._exe(), "-nostdin", "-v", "error", "-i", str(src), "-f", "null", "-"]
        return run_tool(argv, adapter=self.name, operation="validate", timeout=self.validate_timeout)

    def transcode(self, src: Path, dst: Path, params: EncodeParams) -> ToolReceipt:
        argv = [self._exe(), "-nostdin", "-y", "-i", str(src), *params.to_ffmpeg_args(), str(dst)]
        logger.info("Running ffmpeg (%s): %s", params.stage, " ".join(argv[1:]))
        return run_tool(
            argv,
            adapter=self.name,
            operation=f"transcode:{params.stage}",
            timeout=self.encode_timeout,
        )

    def trim(self, src: Path, dst: Path, seconds: float) -> ToolReceipt:
        argv = [
            self._exe(), "-nostdin", "-y",
            "-i", str(src),
            "-t", f"{seconds:g}",
            "-c", "copy",
            "-avoid_negative_ts", "make_zero",
            str(dst),
        ]
        logger.info("Trimming video to %gs: %s -> %s", seconds, src, dst)
        return run_tool(argv, adapter=self.name, operation="trim", timeout=self.encode_timeout)
