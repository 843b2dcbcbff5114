"""
Mock adapters — in-memory stand-ins for ffmpeg and ffprobe.

Used in mock mode and by the test suite to drive every branch of the
video state machine without external binaries. Configurable per
operation: succeed, fail (optionally leaving a partial file behind),
time out, or "succeed" with a zero-byte output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from asset_normalizer.adapters.base import MediaEncoder, MediaProber
from asset_normalizer.core.models.encode import EncodeParams
from asset_normalizer.core.models.media import SourceDimensions
from asset_normalizer.core.models.receipt import ToolReceipt

# Minimal ISO-BMFF header so the output sniffs as video/mp4
MOCK_MP4 = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 512


@dataclass
class MockCall:
    operation: str
    src: Path
    dst: Path | None = None
    params: EncodeParams | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class MockEncoder(MediaEncoder):
    """Encoder double. By default every operation succeeds and writes ``MOCK_MP4``.

    Operation keys: ``validate``, ``transcode:primary``,
    ``transcode:fallback``, ``trim``.
    """

    def __init__(
        self,
        adapter_name: str = "mock-encoder",
        available: bool = True,
        output_bytes: bytes = MOCK_MP4,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = output_bytes
        self._failures: dict[str, ToolReceipt] = {}
        self._outputs: dict[str, bytes | None] = {}
        self._partial: set[str] = set()
        self._call_log: list[MockCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[MockCall]:
        """Every call this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def operations(self) -> list[str]:
        return [c.operation for c in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_failure(
        self,
        operation: str,
        stderr: str = "Mock failure",
        *,
        timed_out: bool = False,
        leave_partial: bool = False,
    ) -> None:
        """Configure an operation to fail with ``stderr`` as its diagnostic."""
        self._failures[operation] = ToolReceipt.failure(
            adapter=self._name,
            operation=operation,
            error=f"{operation} timed out" if timed_out else f"{operation} exited with code 1",
            stderr=stderr,
            return_code=None if timed_out else 1,
            timed_out=timed_out,
        )
        if leave_partial:
            self._partial.add(operation)

    def set_output(self, operation: str, data: bytes | None) -> None:
        """Bytes written on success; ``b""`` for an empty file, None for no file."""
        self._outputs[operation] = data

    def reset(self) -> None:
        self._failures.clear()
        self._outputs.clear()
        self._partial.clear()
        self._call_log.clear()

    def _run(self, operation: str, dst: Path | None) -> ToolReceipt:
        if operation in self._failures:
            if dst is not None and operation in self._partial:
                dst.write_bytes(b"partial")
            return self._failures[operation]

        if dst is not None:
            data = self._outputs.get(operation, self._default_output)
            if data is not None:
                dst.write_bytes(data)

        return ToolReceipt.success(
            adapter=self._name,
            operation=operation,
            return_code=0,
            metadata={"mock": True},
        )

    def validate_input(self, src: Path) -> ToolReceipt:
        self._call_log.append(MockCall(operation="validate", src=src))
        return self._run("validate", None)

    def transcode(self, src: Path, dst: Path, params: EncodeParams) -> ToolReceipt:
        operation = f"transcode:{params.stage}"
        self._call_log.append(MockCall(operation=operation, src=src, dst=dst, params=params))
        return self._run(operation, dst)

    def trim(self, src: Path, dst: Path, seconds: float) -> ToolReceipt:
        self._call_log.append(MockCall(operation="trim", src=src, dst=dst, extra={"seconds": seconds}))
        return self._run("trim", dst)


class MockProber(MediaProber):
    """Prober double returning fixed dimensions or raising a configured error."""

    def __init__(
        self,
        dimensions: SourceDimensions | None = None,
        error: Exception | None = None,
        available: bool = True,
    ):
        self.dimensions = dimensions or SourceDimensions(width=1920, height=1080, duration_seconds=42.0)
        self.error = error
        self._available = available
        self.probed: list[Path] = []

    @property
    def name(self) -> str:
        return "mock-prober"

    def is_available(self) -> bool:
        return self._available

    def probe(self, path: Path) -> SourceDimensions:
        self.probed.append(path)
        if self.error is not None:
            raise self.error
        return self.dimensions
