"""
Encode models — video deployment profiles and per-attempt encoder parameters.

A ``VideoProfile`` is configuration: what a deployment wants from every
video (duration cap, codec, quality, optional scaling). ``EncodeParams``
is the concrete parameter set derived from a profile for one attempt
(primary or fallback) on one asset.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VideoProfile(BaseModel):
    """Video encode policy for a deployment."""

    model_config = ConfigDict(extra="forbid")

    name: str = "reduce"
    duration_cap: float = Field(default=59.0, gt=0)
    trim_seconds: float = Field(default=30.0, gt=0)

    # Primary attempt
    video_codec: str = "libx264"
    pixel_format: str = "yuv420p"
    preset: str = "medium"
    crf: int = Field(default=28, ge=0, le=51)
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    faststart: bool = True

    # Scaling: None keeps the source resolution (bitrate reduction only)
    scale_height: int | None = Field(default=None, gt=0)
    fit: Literal["none", "pad"] = "none"
    default_aspect: tuple[int, int] = (16, 9)

    # Fallback attempt
    fallback_preset: str = "ultrafast"
    fallback_crf: int = Field(default=30, ge=0, le=51)
    fallback_audio_codec: str = "copy"
    fallback_audio_bitrate: str = "96k"
    reencode_audio_containers: tuple[str, ...] = (".webm", ".ogg", ".ogv", ".mkv")


VIDEO_PROFILES: dict[str, VideoProfile] = {
    "reduce": VideoProfile(name="reduce"),
    "scaled": VideoProfile(name="scaled", scale_height=720),
    "fit": VideoProfile(name="fit", fit="pad"),
}


def _fmt_seconds(value: float) -> str:
    return f"{value:g}"


class EncodeParams(BaseModel):
    """Concrete encoder settings for a single transcode attempt."""

    model_config = ConfigDict(frozen=True)

    stage: Literal["primary", "fallback"] = "primary"
    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = 28
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str | None = "128k"
    duration_cap: float | None = 59.0
    faststart: bool = True
    video_filter: str | None = None

    def to_ffmpeg_args(self) -> list[str]:
        """Output-side ffmpeg arguments (everything between input and output path)."""
        args: list[str] = []
        if self.duration_cap:
            args += ["-t", _fmt_seconds(self.duration_cap)]
        args += [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", self.pixel_format,
        ]
        if self.video_filter:
            args += ["-vf", self.video_filter]
        args += ["-c:a", self.audio_codec]
        if self.audio_codec != "copy" and self.audio_bitrate:
            args += ["-b:a", self.audio_bitrate]
        if self.faststart:
            args += ["-movflags", "+faststart"]
        return args

    def describe(self) -> list[str]:
        """Human-readable summary of what these parameters do."""
        parts = ["bitrate reduced"]
        if self.duration_cap:
            parts.append(f"duration capped at {_fmt_seconds(self.duration_cap)}s")
        if self.video_filter:
            parts.append(f"scaled ({self.video_filter})")
        parts.append("converted to MP4")
        if self.stage == "fallback":
            parts.append("fallback encoder settings")
        return parts
