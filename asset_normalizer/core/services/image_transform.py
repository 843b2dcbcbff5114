"""
Image transform — decode, fit to a catalog format's exact box, re-encode JPEG.

Fit modes:
    stretch  resize straight to the target box (default; aspect may distort)
    crop     scale to cover the box, then centre-crop the overflow
    pad      scale to fit inside the box, then pad with black bars

All modes produce exactly ``target_width x target_height`` pixels.
"""

from __future__ import annotations

import io
import logging
from typing import Literal

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from asset_normalizer.core.errors import DecodeError
from asset_normalizer.core.models.media import (
    FormatCatalog,
    MediaFormat,
    ProcessingOutcome,
    SourceDimensions,
)
from asset_normalizer.core.services.formats import match_format

logger = logging.getLogger(__name__)

FitMode = Literal["stretch", "crop", "pad"]

JPEG_QUALITY = 90
OUTPUT_MIME = "image/jpeg"
OUTPUT_EXT = ".jpg"

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)

# EXIF orientations that transpose the image (rotate 90° or 270°)
_ROTATED_ORIENTATIONS = (5, 6, 7, 8)


class ImageTransformer:
    """Resize still images to catalog formats."""

    def __init__(
        self,
        catalog: FormatCatalog,
        quality: int = JPEG_QUALITY,
        fit: FitMode = "stretch",
    ):
        if not 1 <= quality <= 100:
            raise ValueError(f"quality must be in 1..100, got {quality}")
        if fit not in ("stretch", "crop", "pad"):
            raise ValueError(f"unknown fit mode: {fit}")
        self.catalog = catalog
        self.quality = quality
        self.fit = fit

    def inspect(self, data: bytes) -> SourceDimensions:
        """Read dimensions from the image header without a full decode.

        Sizes are as displayed: EXIF orientations that rotate by 90°
        swap width and height.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
                if img.getexif().get(ExifTags.Base.Orientation) in _ROTATED_ORIENTATIONS:
                    width, height = height, width
        except _DECODE_ERRORS as e:
            raise DecodeError(f"failed to read image header: {e}") from e
        return SourceDimensions(width=width, height=height)

    def transform(self, data: bytes, format_name: str) -> ProcessingOutcome:
        """Resize ``data`` to the named format and encode as JPEG.

        Args:
            data: Raw image bytes (never modified).
            format_name: Catalog name ("portrait") or formatted ratio ("4:5").

        Raises:
            InvalidFormatName: ``format_name`` is not in the catalog.
            DecodeError: the image cannot be decoded or encoded.
        """
        target = self.catalog.get(format_name)

        try:
            with Image.open(io.BytesIO(data)) as src:
                src.load()
                original_size = src.size
                img = ImageOps.exif_transpose(src)
                img = _to_rgb(img)
                img = self._fit(img, target)

            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=self.quality, optimize=True)
        except _DECODE_ERRORS as e:
            raise DecodeError(f"failed to decode image: {e}") from e

        output = buf.getvalue()
        logger.info(
            "Image resized: %dx%d → %dx%d (%s, fit=%s): %s → %s bytes",
            original_size[0], original_size[1],
            target.target_width, target.target_height,
            target.formatted_ratio, self.fit,
            f"{len(data):,}", f"{len(output):,}",
        )

        return ProcessingOutcome(
            output_bytes=output,
            was_transformed=True,
            final_dimensions=SourceDimensions(width=target.target_width, height=target.target_height),
            matched_format=target.formatted_ratio,
            mime_type=OUTPUT_MIME,
            extension=OUTPUT_EXT,
            summary=(
                f"resized to {target.target_width}x{target.target_height} ({target.formatted_ratio})",
                "converted to JPEG",
            ),
        )

    def normalize(self, data: bytes) -> ProcessingOutcome:
        """Inspect, match to the closest catalog format, and transform."""
        dims = self.inspect(data)
        if not dims.known:
            raise DecodeError(f"image has no usable size: {dims.width}x{dims.height}")
        target = match_format(dims.width, dims.height, self.catalog)
        return self.transform(data, target.name)

    def _fit(self, img: Image.Image, target: MediaFormat) -> Image.Image:
        size = target.size
        if self.fit == "crop":
            return ImageOps.fit(img, size, method=Image.LANCZOS)
        if self.fit == "pad":
            return ImageOps.pad(img, size, method=Image.LANCZOS, color=(0, 0, 0))
        return img.resize(size, Image.LANCZOS)


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten to RGB for JPEG; transparent areas become white."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        bg = Image.new("RGB", img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[-1] if "A" in img.mode else None)
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img
