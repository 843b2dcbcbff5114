"""
Domain models — Pydantic types for the normalization pipeline.

All models are re-exported here for convenient access:

    from asset_normalizer.core.models import MediaFormat, SourceDimensions, ToolReceipt
"""

from asset_normalizer.core.models.encode import VIDEO_PROFILES, EncodeParams, VideoProfile
from asset_normalizer.core.models.media import (
    AspectRatioReport,
    FormatCatalog,
    MediaFormat,
    MediaReport,
    ProcessingFailure,
    ProcessingOutcome,
    SourceDimensions,
)
from asset_normalizer.core.models.receipt import ToolReceipt

__all__ = [
    "AspectRatioReport",
    "EncodeParams",
    "FormatCatalog",
    "MediaFormat",
    "MediaReport",
    "ProcessingFailure",
    "ProcessingOutcome",
    "SourceDimensions",
    "ToolReceipt",
    "VIDEO_PROFILES",
    "VideoProfile",
]
