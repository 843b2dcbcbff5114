"""
Media models — catalog entries, source dimensions, and processing results.

``MediaFormat`` and ``FormatCatalog`` are immutable: the catalog is built
once from settings and handed to every component that needs it.
``SourceDimensions`` and ``ProcessingOutcome`` live for a single asset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field

from asset_normalizer.core.errors import InvalidFormatName


class MediaFormat(BaseModel):
    """A standard target format: name, exact pixel box, and ratio label."""

    model_config = ConfigDict(frozen=True)

    name: str
    target_width: int = Field(gt=0)
    target_height: int = Field(gt=0)
    formatted_ratio: str

    @property
    def aspect_ratio(self) -> float:
        return self.target_width / self.target_height

    @property
    def size(self) -> tuple[int, int]:
        return self.target_width, self.target_height


@dataclass(frozen=True)
class FormatCatalog:
    """Ordered, read-only table of target formats.

    Declaration order is part of the contract: the matcher breaks ties
    in favour of the entry declared first.
    """

    formats: tuple[MediaFormat, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "formats", tuple(self.formats))

    def __iter__(self) -> Iterator[MediaFormat]:
        return iter(self.formats)

    def __len__(self) -> int:
        return len(self.formats)

    def get(self, key: str) -> MediaFormat:
        """Look up an entry by name (``"story"``) or formatted ratio (``"9:16"``)."""
        for fmt in self.formats:
            if key in (fmt.name, fmt.formatted_ratio):
                return fmt
        raise InvalidFormatName(f"invalid format name: {key}")

    def names(self) -> list[str]:
        return [f.name for f in self.formats]

    def to_list(self) -> list[dict]:
        return [
            {
                "name": f.name,
                "width": f.target_width,
                "height": f.target_height,
                "aspect_ratio": round(f.aspect_ratio, 4),
                "formatted_ratio": f.formatted_ratio,
            }
            for f in self.formats
        ]


class SourceDimensions(BaseModel):
    """Probed or decoded source size. Zero means "unknown"."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    duration_seconds: float = Field(default=0.0, ge=0)

    @property
    def known(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of transforming one asset, handed straight to the uploader."""

    output_bytes: bytes = field(repr=False)
    was_transformed: bool
    final_dimensions: SourceDimensions
    matched_format: str
    mime_type: str
    extension: str
    final_duration_seconds: float = 0.0
    summary: tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.output_bytes)


class MediaReport(BaseModel):
    """Metadata record surfaced to callers for every processed asset."""

    file_type: str
    mime_type: str = ""
    width: int = 0
    height: int = 0
    aspect_ratio: str = ""
    matched_format: str = ""
    duration: float = 0.0
    summary: str = ""


class ProcessingFailure(BaseModel):
    """Structured description of a per-asset failure."""

    stage: str
    error: str
    message: str
    diagnostic: str = ""


class AspectRatioReport(BaseModel):
    """Aspect-ratio details for a remote video."""

    width: int
    height: int
    original_ratio: float
    formatted_ratio: str
    standard_format: str
    duration: float = 0.0
