"""
Adapter base — the narrow contracts between the core and external tools.

The core never spawns ffmpeg/ffprobe or touches storage directly; it
talks to these interfaces so tests can substitute in-memory fakes.

    MediaProber   probe(path) -> SourceDimensions
    MediaEncoder  validate_input / transcode / trim -> ToolReceipt
    BlobUploader  upload(stream, key) -> public URL
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from asset_normalizer.core.models.encode import EncodeParams
from asset_normalizer.core.models.media import SourceDimensions
from asset_normalizer.core.models.receipt import ToolReceipt


class MediaProber(ABC):
    """Extracts width, height and duration from a media file."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'ffprobe', 'mock-prober')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool can be run. Fast, never raises."""

    @abstractmethod
    def probe(self, path: Path) -> SourceDimensions:
        """Return the file's dimensions.

        Raises:
            ProbeUnavailable: the tool is missing, failed or timed out.
            ProbeFormatError: the tool's output could not be parsed.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class MediaEncoder(ABC):
    """Runs the external encoder.

    Encoders NEVER raise for tool failures — every failure (non-zero
    exit, timeout, missing binary) comes back as a failed ToolReceipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'ffmpeg', 'mock-encoder')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the encoder binary is resolvable. Fast, never raises."""

    @abstractmethod
    def validate_input(self, src: Path) -> ToolReceipt:
        """Decode ``src`` without writing output to detect corrupt data."""

    @abstractmethod
    def transcode(self, src: Path, dst: Path, params: EncodeParams) -> ToolReceipt:
        """Re-encode ``src`` into ``dst`` with ``params``."""

    @abstractmethod
    def trim(self, src: Path, dst: Path, seconds: float) -> ToolReceipt:
        """Stream-copy the first ``seconds`` of ``src`` into ``dst``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class BlobUploader(ABC):
    """Stores final processed bytes and returns where they can be fetched."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'local')."""

    @abstractmethod
    def upload(self, stream: BinaryIO, object_key: str) -> str:
        """Store the stream under ``object_key`` and return its public URL."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
