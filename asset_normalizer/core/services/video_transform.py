"""
Video transform — tiered transcode of one video as an explicit state machine.

    VALIDATE ──▶ PROBE ──▶ PRIMARY ──▶ VERIFY ──▶ DONE
                   │          │          ▲  │
                   │          ▼          │  └──▶ FAILED (EmptyOutputError)
                   │       FALLBACK ─────┘
                   │          └──────────────▶ FAILED (TranscodeError)
                   └─────────────────────────▶ FAILED (CorruptInputError)

VALIDATE raises ``EncoderUnavailable`` directly: a missing encoder is an
environment problem, not something a single asset can recover from.

Each state has one handler that takes the ``VideoJob`` and returns the
next state. There are no cycles; PRIMARY runs once, FALLBACK at most once.
On FAILED the output file is removed before the error is raised.

``trim()`` is a separate entry point (stream-copy preview), not a branch
of the transcode machine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from asset_normalizer.adapters.base import MediaEncoder, MediaProber
from asset_normalizer.core.errors import (
    CorruptInputError,
    EmptyOutputError,
    EncoderUnavailable,
    NormalizationError,
    ProbeFormatError,
    ProbeUnavailable,
    TranscodeError,
)
from asset_normalizer.core.models.encode import EncodeParams, VideoProfile
from asset_normalizer.core.models.media import FormatCatalog, MediaFormat, SourceDimensions
from asset_normalizer.core.models.receipt import ToolReceipt
from asset_normalizer.core.services.formats import UNKNOWN_RATIO, match_format

logger = logging.getLogger(__name__)


class VideoState(str, Enum):
    VALIDATE = "validate"
    PROBE = "probe"
    PRIMARY = "primary"
    FALLBACK = "fallback"
    VERIFY = "verify"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({VideoState.DONE, VideoState.FAILED})


@dataclass
class EncodeAttempt:
    params: EncodeParams
    receipt: ToolReceipt


@dataclass
class VideoJob:
    """Mutable record of one asset moving through the state machine."""

    src: Path
    dst: Path
    dimensions: SourceDimensions | None = None
    state: VideoState = VideoState.VALIDATE
    attempts: list[EncodeAttempt] = field(default_factory=list)
    params: EncodeParams | None = None
    error: NormalizationError | None = None
    history: list[VideoState] = field(default_factory=list)


@dataclass(frozen=True)
class VideoResult:
    output_path: Path
    was_transformed: bool
    params: EncodeParams | None
    source: SourceDimensions
    final_duration_seconds: float
    matched_format: str
    attempts: tuple[EncodeAttempt, ...] = ()
    trim_seconds: float | None = None

    @property
    def stage(self) -> str:
        return self.params.stage if self.params else "trim"

    def summary(self) -> list[str]:
        if self.params is None:
            return [f"trimmed to {self.trim_seconds or self.final_duration_seconds:g}s", "stream copy"]
        return self.params.describe()


# ── Parameter derivation ────────────────────────────────────────


def _even(value: float) -> int:
    return max(2, int(round(value / 2)) * 2)


def scale_filter(dims: SourceDimensions, profile: VideoProfile) -> str | None:
    """Scale to ``profile.scale_height`` keeping the source aspect ratio.

    Never upscales. When probing failed the profile's default aspect
    (16:9) is assumed.
    """
    target_h = profile.scale_height
    if not target_h:
        return None

    if dims.known:
        if dims.height <= target_h:
            return None
        aspect = dims.width / dims.height
    else:
        num, den = profile.default_aspect
        aspect = num / den

    return f"scale={_even(target_h * aspect)}:{_even(target_h)}"


def pad_filter(fmt: MediaFormat) -> str:
    """Scale down to fit ``fmt``'s box and pad to its exact size."""
    w, h = fmt.target_width, fmt.target_height
    return (
        f"scale='min({w},iw)':'min({h},ih)':force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2"
    )


def _video_filter(
    dims: SourceDimensions,
    profile: VideoProfile,
    target: MediaFormat | None,
) -> str | None:
    if profile.fit == "pad" and target is not None:
        return pad_filter(target)
    return scale_filter(dims, profile)


def primary_params(
    dims: SourceDimensions,
    profile: VideoProfile,
    target: MediaFormat | None = None,
) -> EncodeParams:
    return EncodeParams(
        stage="primary",
        video_codec=profile.video_codec,
        preset=profile.preset,
        crf=profile.crf,
        pixel_format=profile.pixel_format,
        audio_codec=profile.audio_codec,
        audio_bitrate=profile.audio_bitrate,
        duration_cap=profile.duration_cap,
        faststart=profile.faststart,
        video_filter=_video_filter(dims, profile, target),
    )


def fallback_params(
    dims: SourceDimensions,
    profile: VideoProfile,
    src: Path,
    target: MediaFormat | None = None,
) -> EncodeParams:
    """Relaxed settings: fastest preset, higher CRF, simpler audio.

    Sources in containers whose audio codecs MP4 can't carry (webm,
    ogg, mkv) get their audio re-encoded instead of stream-copied.
    """
    audio_codec = profile.fallback_audio_codec
    if audio_codec == "copy" and src.suffix.lower() in profile.reencode_audio_containers:
        audio_codec = "aac"

    return EncodeParams(
        stage="fallback",
        video_codec=profile.video_codec,
        preset=profile.fallback_preset,
        crf=profile.fallback_crf,
        pixel_format=profile.pixel_format,
        audio_codec=audio_codec,
        audio_bitrate=profile.fallback_audio_bitrate,
        duration_cap=profile.duration_cap,
        faststart=profile.faststart,
        video_filter=_video_filter(dims, profile, target),
    )


def capped_duration(source_seconds: float, cap: float | None) -> float:
    if cap and source_seconds > cap:
        return cap
    return source_seconds


# ── State machine ───────────────────────────────────────────────


class VideoTransformer:
    """Normalize videos through the VALIDATE → … → VERIFY state machine."""

    def __init__(
        self,
        encoder: MediaEncoder,
        prober: MediaProber,
        profile: VideoProfile | None = None,
        catalog: FormatCatalog | None = None,
    ):
        self.encoder = encoder
        self.prober = prober
        self.profile = profile or VideoProfile()
        self.catalog = catalog or FormatCatalog()
        self._handlers: dict[VideoState, Callable[[VideoJob], VideoState]] = {
            VideoState.VALIDATE: self._validate,
            VideoState.PROBE: self._probe,
            VideoState.PRIMARY: self._primary,
            VideoState.FALLBACK: self._fallback,
            VideoState.VERIFY: self._verify,
        }

    def transform(
        self,
        src: Path,
        dst: Path | None = None,
        dimensions: SourceDimensions | None = None,
    ) -> VideoResult:
        """Run the full transcode for ``src``.

        Args:
            src: Input video path (read-only).
            dst: Output path (default: ``<stem>_processed.mp4`` beside src).
            dimensions: Already-probed dimensions; probed here if None.

        Raises:
            EncoderUnavailable, CorruptInputError, TranscodeError, EmptyOutputError.
        """
        dst = dst or src.with_name(f"{src.stem}_processed.mp4")
        job = VideoJob(src=src, dst=dst, dimensions=dimensions)
        self.run(job)

        if job.state is VideoState.FAILED:
            dst.unlink(missing_ok=True)
            assert job.error is not None
            raise job.error

        dims = job.dimensions or SourceDimensions()
        logger.info(
            "Video processing completed (%s settings): %s",
            job.params.stage if job.params else "?", dst,
        )
        return VideoResult(
            output_path=dst,
            was_transformed=True,
            params=job.params,
            source=dims,
            final_duration_seconds=capped_duration(dims.duration_seconds, self.profile.duration_cap),
            matched_format=self._matched_label(dims),
            attempts=tuple(job.attempts),
        )

    def run(self, job: VideoJob) -> VideoJob:
        """Drive ``job`` from its current state to a terminal state."""
        while job.state not in TERMINAL_STATES:
            job.history.append(job.state)
            job.state = self.step(job)
        job.history.append(job.state)
        return job

    def step(self, job: VideoJob) -> VideoState:
        """Execute the handler for ``job.state`` and return the next state."""
        return self._handlers[job.state](job)

    # ── Handlers ────────────────────────────────────────────────

    def _validate(self, job: VideoJob) -> VideoState:
        if not self.encoder.is_available():
            logger.error("Encoder %s not found", self.encoder.name)
            raise EncoderUnavailable(f"{self.encoder.name} is not installed")
        return VideoState.PROBE

    def _probe(self, job: VideoJob) -> VideoState:
        if job.dimensions is None:
            try:
                job.dimensions = self.prober.probe(job.src)
            except (ProbeUnavailable, ProbeFormatError) as e:
                logger.warning("Failed to get video metadata: %s, proceeding with conversion anyway", e)
                job.dimensions = SourceDimensions()

        receipt = self.encoder.validate_input(job.src)
        if not receipt.ok:
            logger.error("Validation pass failed for %s: %s", job.src, receipt.diagnostic[-300:])
            job.error = CorruptInputError(
                "failed to process video - input file may be corrupted",
                diagnostic=receipt.diagnostic,
            )
            return VideoState.FAILED
        return VideoState.PRIMARY

    def _primary(self, job: VideoJob) -> VideoState:
        params = primary_params(self._dims(job), self.profile, self._target(job))
        receipt = self._encode(job, params)
        if receipt.ok:
            return VideoState.VERIFY

        logger.warning("Primary transcode failed (%s), trying fallback settings", receipt.error)
        return VideoState.FALLBACK

    def _fallback(self, job: VideoJob) -> VideoState:
        params = fallback_params(self._dims(job), self.profile, job.src, self._target(job))
        receipt = self._encode(job, params)
        if receipt.ok:
            logger.info("Fallback conversion succeeded")
            return VideoState.VERIFY

        diagnostics = "\n".join(
            f"[{a.params.stage}] {a.receipt.error or ''}\n{a.receipt.diagnostic}".rstrip()
            for a in job.attempts
        )
        logger.error("Fallback conversion also failed: %s", receipt.error)
        job.error = TranscodeError(
            "failed to process video (all methods)",
            diagnostic=diagnostics,
        )
        return VideoState.FAILED

    def _verify(self, job: VideoJob) -> VideoState:
        if not job.dst.is_file():
            job.error = EmptyOutputError(f"output file not created: {job.dst}")
            return VideoState.FAILED
        if job.dst.stat().st_size == 0:
            job.error = EmptyOutputError("output file has zero size")
            return VideoState.FAILED
        return VideoState.DONE

    # ── Helpers ─────────────────────────────────────────────────

    def _encode(self, job: VideoJob, params: EncodeParams) -> ToolReceipt:
        job.dst.unlink(missing_ok=True)
        receipt = self.encoder.transcode(job.src, job.dst, params)
        job.params = params
        job.attempts.append(EncodeAttempt(params=params, receipt=receipt))
        return receipt

    @staticmethod
    def _dims(job: VideoJob) -> SourceDimensions:
        return job.dimensions or SourceDimensions()

    def _target(self, job: VideoJob) -> MediaFormat | None:
        dims = self._dims(job)
        if self.profile.fit != "pad" or not dims.known or len(self.catalog) == 0:
            return None
        return match_format(dims.width, dims.height, self.catalog)

    def _matched_label(self, dims: SourceDimensions) -> str:
        if not dims.known or len(self.catalog) == 0:
            return UNKNOWN_RATIO
        return match_format(dims.width, dims.height, self.catalog).formatted_ratio

    # ── Trim-only entry point ───────────────────────────────────

    def trim(
        self,
        src: Path,
        dst: Path | None = None,
        seconds: float | None = None,
        dimensions: SourceDimensions | None = None,
    ) -> VideoResult:
        """Stream-copy the first ``seconds`` (default: profile.trim_seconds) of ``src``.

        No re-encode, codec and resolution unchanged.

        Raises:
            EncoderUnavailable, TranscodeError, EmptyOutputError.
        """
        seconds = seconds or self.profile.trim_seconds
        dst = dst or src.with_name(f"{src.stem}_trimmed{src.suffix or '.mp4'}")

        if not self.encoder.is_available():
            raise EncoderUnavailable(f"{self.encoder.name} is not installed")

        if dimensions is None:
            try:
                dimensions = self.prober.probe(src)
            except (ProbeUnavailable, ProbeFormatError) as e:
                logger.warning("Failed to get video metadata before trim: %s", e)
                dimensions = SourceDimensions()

        dst.unlink(missing_ok=True)
        receipt = self.encoder.trim(src, dst, seconds)
        try:
            if not receipt.ok:
                raise TranscodeError(
                    f"ffmpeg failed to trim video: {receipt.error}",
                    diagnostic=receipt.diagnostic,
                )
            if not dst.is_file():
                raise EmptyOutputError(f"trimmed video file was not created: {dst}")
            if dst.stat().st_size == 0:
                raise EmptyOutputError("trimmed video file has zero size")
        except NormalizationError:
            dst.unlink(missing_ok=True)
            raise

        final = capped_duration(dimensions.duration_seconds, seconds) if dimensions.duration_seconds else seconds
        logger.info("Successfully trimmed video to %gs: %s", seconds, dst)
        return VideoResult(
            output_path=dst,
            was_transformed=True,
            params=None,
            source=dimensions,
            final_duration_seconds=final,
            matched_format=self._matched_label(dimensions),
            trim_seconds=seconds,
        )
