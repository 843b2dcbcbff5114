"""
Normalization errors — the failure taxonomy of the media pipeline.

Every error carries the pipeline ``stage`` it came from and, where an
external tool was involved, the captured ``diagnostic`` text. The
pipeline boundary turns these into structured failures; only
``EncoderUnavailable`` is allowed to escape it.
"""

from __future__ import annotations


class NormalizationError(Exception):
    """Base class for all per-asset processing errors."""

    stage: str = "pipeline"
    fatal: bool = False

    def __init__(self, message: str, *, diagnostic: str = "", stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic
        if stage is not None:
            self.stage = stage

    def to_dict(self) -> dict[str, str]:
        return {
            "stage": self.stage,
            "error": type(self).__name__,
            "message": self.message,
            "diagnostic": self.diagnostic,
        }


class UnreadableInput(NormalizationError):
    """Source bytes could not be opened or read."""

    stage = "read"


class UnknownFormat(NormalizationError):
    """No magic-byte signature matched."""

    stage = "sniff"


class InvalidFormatName(NormalizationError, KeyError):
    """Requested target format is not in the catalog."""

    stage = "match"

    def __str__(self) -> str:
        return self.message


class DivisionUndefined(NormalizationError, ValueError):
    """Aspect ratio requested for a zero height."""

    stage = "match"


class DecodeError(NormalizationError):
    """Image data is malformed or unsupported."""

    stage = "image"


class ProbeFormatError(NormalizationError):
    """Prober output did not have the expected ``width,height,duration`` shape."""

    stage = "probe"


class ProbeUnavailable(NormalizationError):
    """Prober binary missing, failed, or timed out."""

    stage = "probe"


class CorruptInputError(NormalizationError):
    """Validation decode pass rejected the source video."""

    stage = "validate"


class TranscodeError(NormalizationError):
    """Both the primary and the fallback encode failed."""

    stage = "transcode"


class EmptyOutputError(NormalizationError):
    """Encoder reported success but the output is missing or zero bytes."""

    stage = "verify"


class EncoderUnavailable(NormalizationError):
    """Encoder binary is not resolvable — a deployment error, not a per-asset one."""

    stage = "environment"
    fatal = True
