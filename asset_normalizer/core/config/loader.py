"""
Configuration loader — reads normalizer.yml and the environment into Settings.

The YAML file is optional: without one every setting has a working
default. Environment variables (``ANORM_*``) override file values.
The result is validated against Pydantic schemas and returned as a
typed ``Settings`` object.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from asset_normalizer.core.models.encode import VIDEO_PROFILES, VideoProfile
from asset_normalizer.core.models.media import FormatCatalog, MediaFormat

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "normalizer.yml"

DEFAULT_FORMATS: list[dict[str, Any]] = [
    {"name": "square", "target_width": 1080, "target_height": 1080, "formatted_ratio": "1:1"},
    {"name": "portrait", "target_width": 1080, "target_height": 1350, "formatted_ratio": "4:5"},
    {"name": "story", "target_width": 1080, "target_height": 1920, "formatted_ratio": "9:16"},
    {"name": "landscape", "target_width": 1080, "target_height": 608, "formatted_ratio": "1.91:1"},
]

# env var → (section, key)
_ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "ANORM_LOG_LEVEL": (None, "log_level"),
    "ANORM_MODE": (None, "mode"),
    "ANORM_IMAGE_QUALITY": ("image", "quality"),
    "ANORM_IMAGE_FIT": ("image", "fit"),
    "ANORM_VIDEO_PROFILE": ("video", "profile"),
    "ANORM_FFMPEG": ("video", "ffmpeg"),
    "ANORM_FFPROBE": ("video", "ffprobe"),
    "ANORM_UPLOAD_DIR": ("storage", "upload_dir"),
    "ANORM_PUBLIC_BASE_URL": ("storage", "public_base_url"),
}


class ConfigError(Exception):
    """Raised when normalizer configuration is invalid or missing."""


class ImageSettings(BaseModel):
    quality: int = Field(default=90, ge=1, le=100)
    fit: Literal["stretch", "crop", "pad"] = "stretch"


class VideoSettings(BaseModel):
    profile: str = "reduce"
    overrides: dict[str, Any] = Field(default_factory=dict)

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"

    probe_timeout: int = Field(default=15, gt=0)
    probe_read_seconds: int | None = Field(default=5, gt=0)
    validate_timeout: int = Field(default=60, gt=0)
    encode_timeout: int = Field(default=120, gt=0)

    @field_validator("profile")
    @classmethod
    def _known_profile(cls, value: str) -> str:
        if value not in VIDEO_PROFILES:
            raise ValueError(
                f"unknown video profile '{value}'. Valid: {', '.join(sorted(VIDEO_PROFILES))}"
            )
        return value

    @field_validator("overrides")
    @classmethod
    def _known_override_keys(cls, value: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(value) - set(VideoProfile.model_fields))
        if unknown:
            raise ValueError(
                f"unknown video profile field(s): {', '.join(unknown)}. "
                f"Valid: {', '.join(sorted(VideoProfile.model_fields))}"
            )
        return value

    def resolve_profile(self) -> VideoProfile:
        """Named profile with any per-deployment overrides applied."""
        base = VIDEO_PROFILES[self.profile].model_dump()
        base.update(self.overrides)
        return VideoProfile.model_validate(base)


class StorageSettings(BaseModel):
    upload_dir: str = "uploads"
    public_base_url: str = ""
    max_upload_mb: int = Field(default=100, gt=0)


class Settings(BaseModel):
    """All runtime settings for the normalizer."""

    log_level: str = "WARNING"
    log_file: str | None = None
    log_file_level: str | None = None
    mode: Literal["normalize", "metadata", "trim"] = "normalize"
    reject_unknown: bool = False

    formats: list[MediaFormat] = Field(
        default_factory=lambda: [MediaFormat.model_validate(f) for f in DEFAULT_FORMATS],
        min_length=1,
    )
    image: ImageSettings = Field(default_factory=ImageSettings)
    video: VideoSettings = Field(default_factory=VideoSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    def catalog(self) -> FormatCatalog:
        return FormatCatalog(tuple(self.formats))


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for normalizer.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to normalizer.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _apply_env(data: dict[str, Any], environ: dict[str, str]) -> None:
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        target = data if section is None else data.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"Section '{section}' must be a mapping to apply {var}")
        target[key] = value


def load_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load and validate normalizer settings.

    Args:
        path: Explicit path to normalizer.yml. If None, searches upward and
            falls back to defaults when no file exists.
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    environ = dict(os.environ) if environ is None else environ
    explicit = path is not None
    if path is None:
        path = find_settings_file()

    data: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            if explicit:
                raise ConfigError(f"Config file not found: {path}")
        else:
            logger.debug("Loading settings from %s", path)
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigError(f"Cannot read {path}: {e}") from e

            try:
                loaded = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ConfigError(
                    f"Expected a YAML mapping in {path}, got {type(loaded).__name__}"
                )
            data = loaded

    _apply_env(data, environ)

    try:
        settings = Settings.model_validate(data)
        settings.video.resolve_profile()
    except ValidationError as e:
        raise ConfigError(f"Invalid normalizer configuration: {e}") from e

    logger.info(
        "Loaded settings: %d formats, video profile '%s', mode '%s'",
        len(settings.formats), settings.video.profile, settings.mode,
    )
    return settings
