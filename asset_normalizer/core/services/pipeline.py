"""
Media pipeline — sniff, match, transform, verify one uploaded asset.

The single entry point the front-ends use. Every per-asset error is
caught here and reported as a structured ``ProcessingFailure``; only
``EncoderUnavailable`` escapes, because it means the whole service
instance is misconfigured.

Modes:
    normalize  images → catalog resize; videos → full transcode
    metadata   no transform; report matched format and ratio
    trim       videos → stream-copy preview; images as in metadata
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from asset_normalizer.adapters.base import MediaEncoder, MediaProber
from asset_normalizer.core.config.loader import Settings
from asset_normalizer.core.errors import (
    EncoderUnavailable,
    NormalizationError,
    ProbeFormatError,
    ProbeUnavailable,
    UnreadableInput,
)
from asset_normalizer.core.models.media import (
    MediaReport,
    ProcessingFailure,
    ProcessingOutcome,
    SourceDimensions,
)
from asset_normalizer.core.services.formats import detect_format, ratio_label
from asset_normalizer.core.services.image_transform import ImageTransformer
from asset_normalizer.core.services.sniffer import SNIFF_BYTES, Classification, classify, require_known
from asset_normalizer.core.services.video_transform import VideoResult, VideoTransformer

logger = logging.getLogger(__name__)

Mode = Literal["normalize", "metadata", "trim"]
MODES: tuple[str, ...] = ("normalize", "metadata", "trim")

NO_PROCESSING = "no processing needed"


def _ext_for_mime(mime_type: str | None) -> str:
    """Map a sniffed MIME type to a file extension."""
    return {
        "video/mp4": ".mp4",
        "video/webm": ".webm",
        "video/quicktime": ".mov",
        "video/x-msvideo": ".avi",
        "video/x-matroska": ".mkv",
        "video/x-flv": ".flv",
        "video/x-ms-wmv": ".wmv",
        "video/mpeg": ".mpg",
        "video/x-m4v": ".m4v",
        "video/3gpp": ".3gp",
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/gif": ".gif",
        "image/webp": ".webp",
        "image/bmp": ".bmp",
        "image/tiff": ".tiff",
    }.get(mime_type or "", ".bin")


def _video_extension(filename: str, classification: Classification) -> str:
    """Container extension for a video: the sniffed type wins over the filename.

    ffmpeg picks demuxers and muxers by extension, and the fallback
    audio policy keys on it, so a mislabeled upload must not carry its
    label through.
    """
    if classification.by == "signature":
        ext = _ext_for_mime(classification.mime)
        if ext != ".bin":
            return ext
    return Path(filename).suffix.lower() or ".mp4"


@dataclass(frozen=True)
class PipelineResult:
    report: MediaReport
    outcome: ProcessingOutcome | None = None
    failure: ProcessingFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class MediaPipeline:
    """Wire the transformers together from settings and adapters."""

    def __init__(self, settings: Settings, encoder: MediaEncoder, prober: MediaProber):
        self.settings = settings
        self.catalog = settings.catalog()
        self.encoder = encoder
        self.prober = prober
        self.images = ImageTransformer(
            self.catalog,
            quality=settings.image.quality,
            fit=settings.image.fit,
        )
        self.videos = VideoTransformer(
            encoder,
            prober,
            profile=settings.video.resolve_profile(),
            catalog=self.catalog,
        )

    @classmethod
    def from_settings(cls, settings: Settings, mock_mode: bool = False) -> MediaPipeline:
        """Build a pipeline with the ffmpeg/ffprobe adapters (or mocks)."""
        if mock_mode:
            from asset_normalizer.adapters.mock import MockEncoder, MockProber

            return cls(settings, MockEncoder(), MockProber())

        from asset_normalizer.adapters.media.ffmpeg import FfmpegEncoder
        from asset_normalizer.adapters.media.ffprobe import FfprobeProber

        video = settings.video
        encoder = FfmpegEncoder(
            binary=video.ffmpeg,
            validate_timeout=video.validate_timeout,
            encode_timeout=video.encode_timeout,
        )
        prober = FfprobeProber(
            binary=video.ffprobe,
            timeout=video.probe_timeout,
            read_interval_seconds=video.probe_read_seconds,
        )
        return cls(settings, encoder, prober)

    # ── Entry points ────────────────────────────────────────────

    def process_path(self, path: Path, mode: Mode | None = None) -> PipelineResult:
        """Read ``path`` and process it; unreadable files become a failure."""
        try:
            data = path.read_bytes()
        except OSError as e:
            return self._failed(Classification(kind="other"), UnreadableInput(f"failed to read {path}: {e}"))
        return self.process(data, path.name, mode)

    def process(self, data: bytes, filename: str = "", mode: Mode | None = None) -> PipelineResult:
        """Classify and transform one asset.

        ``data`` is never modified; pass-through results hand back the
        same bytes object.

        Raises:
            EncoderUnavailable: a video needs the encoder and it is missing.
            ValueError: unknown mode.
        """
        mode = mode or self.settings.mode
        if mode not in MODES:
            raise ValueError(f"unknown mode '{mode}'. Valid: {', '.join(MODES)}")

        head = data[:SNIFF_BYTES]
        classification = classify(head, filename, at_eof=len(data) <= SNIFF_BYTES)

        try:
            if self.settings.reject_unknown:
                require_known(classification)
            if classification.kind == "image":
                return self._image(data, classification, mode)
            if classification.kind == "video":
                return self._video(data, filename, classification, mode)
            return self._passthrough(data, filename, classification)
        except EncoderUnavailable:
            raise
        except NormalizationError as e:
            return self._failed(classification, e)
        except OSError as e:
            return self._failed(classification, UnreadableInput(f"I/O error while processing: {e}"))

    # ── Images ──────────────────────────────────────────────────

    def _image(self, data: bytes, classification: Classification, mode: Mode) -> PipelineResult:
        if mode == "normalize":
            outcome = self.images.normalize(data)
        else:
            dims = self.images.inspect(data)
            outcome = ProcessingOutcome(
                output_bytes=data,
                was_transformed=False,
                final_dimensions=dims,
                matched_format=detect_format(dims.width, dims.height, self.catalog),
                mime_type=classification.mime or "application/octet-stream",
                extension=_ext_for_mime(classification.mime),
                summary=(NO_PROCESSING,),
            )
        return self._done("image", outcome)

    # ── Videos ──────────────────────────────────────────────────

    def _video(
        self,
        data: bytes,
        filename: str,
        classification: Classification,
        mode: Mode,
    ) -> PipelineResult:
        ext = _video_extension(filename, classification)
        tmpdir = tempfile.mkdtemp(prefix="anorm_")
        try:
            src = Path(tmpdir) / f"input{ext}"
            src.write_bytes(data)
            dims = self._probe(src)

            if mode == "metadata":
                outcome = ProcessingOutcome(
                    output_bytes=data,
                    was_transformed=False,
                    final_dimensions=dims,
                    matched_format=detect_format(dims.width, dims.height, self.catalog),
                    mime_type=classification.mime or "video/mp4",
                    extension=ext,
                    final_duration_seconds=dims.duration_seconds,
                    summary=(NO_PROCESSING,),
                )
                return self._done("video", outcome)

            if mode == "trim":
                result = self.videos.trim(src, Path(tmpdir) / f"trimmed{ext}", dimensions=dims)
                mime, out_ext = classification.mime or "video/mp4", ext
            else:
                result = self.videos.transform(src, Path(tmpdir) / "output.mp4", dimensions=dims)
                mime, out_ext = "video/mp4", ".mp4"

            return self._done("video", self._video_outcome(result, mime, out_ext))
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

    def _probe(self, path: Path) -> SourceDimensions:
        try:
            return self.prober.probe(path)
        except (ProbeUnavailable, ProbeFormatError) as e:
            logger.warning("Failed to get video metadata for %s: %s", path.name, e)
            return SourceDimensions()

    def _video_outcome(self, result: VideoResult, mime: str, ext: str) -> ProcessingOutcome:
        final = self._probe(result.output_path)
        if not final.known:
            final = result.source
        return ProcessingOutcome(
            output_bytes=result.output_path.read_bytes(),
            was_transformed=result.was_transformed,
            final_dimensions=SourceDimensions(
                width=final.width,
                height=final.height,
                duration_seconds=result.final_duration_seconds,
            ),
            matched_format=result.matched_format,
            mime_type=mime,
            extension=ext,
            final_duration_seconds=result.final_duration_seconds,
            summary=tuple(result.summary()),
        )

    # ── Other / results ─────────────────────────────────────────

    def _passthrough(self, data: bytes, filename: str, classification: Classification) -> PipelineResult:
        mime = classification.mime or "application/octet-stream"
        outcome = ProcessingOutcome(
            output_bytes=data,
            was_transformed=False,
            final_dimensions=SourceDimensions(),
            matched_format="",
            mime_type=mime,
            extension=Path(filename).suffix.lower() or _ext_for_mime(classification.mime),
            summary=(NO_PROCESSING,),
        )
        return self._done(mime, outcome)

    def _done(self, file_type: str, outcome: ProcessingOutcome) -> PipelineResult:
        dims = outcome.final_dimensions
        report = MediaReport(
            file_type=file_type,
            mime_type=outcome.mime_type,
            width=dims.width,
            height=dims.height,
            aspect_ratio=ratio_label(dims.width, dims.height) if dims.known else "",
            matched_format=outcome.matched_format,
            duration=outcome.final_duration_seconds,
            summary=", ".join(outcome.summary),
        )
        logger.info(
            "Processed %s (%s): %s, %s bytes",
            file_type, outcome.mime_type, report.summary, f"{outcome.size:,}",
        )
        return PipelineResult(report=report, outcome=outcome)

    def _failed(self, classification: Classification, error: NormalizationError) -> PipelineResult:
        logger.warning("Processing failed at %s: %s", error.stage, error.message)
        if error.diagnostic:
            logger.debug("Diagnostic output:\n%s", error.diagnostic)
        return PipelineResult(
            report=MediaReport(
                file_type=classification.kind if classification.kind != "other" else (classification.mime or "other"),
                mime_type=classification.mime or "",
            ),
            failure=ProcessingFailure(**error.to_dict()),
        )
