"""
Format matching — snap a source size to the closest catalog format.

Two independent tools live here:

    match_format() / detect_format()  — nearest entry of a small fixed catalog
    rationalize() / ratio_label()     — free-form "W:H" for human-readable reports

Neither resizes anything; matching and transforming are separate steps.
"""

from __future__ import annotations

import math

from asset_normalizer.core.errors import DivisionUndefined
from asset_normalizer.core.models.media import FormatCatalog, MediaFormat

# Reported for assets whose width or height is unknown (0)
UNKNOWN_RATIO = "0:0"

DEFAULT_MAX_DENOMINATOR = 100


def match_format(width: int, height: int, catalog: FormatCatalog) -> MediaFormat:
    """Return the catalog entry whose aspect ratio is closest to ``width/height``.

    Ties go to the entry declared first in the catalog.

    Raises:
        DivisionUndefined: height is 0.
        ValueError: the catalog is empty.
    """
    if height == 0:
        raise DivisionUndefined(f"cannot compute aspect ratio of {width}x{height}")
    if len(catalog) == 0:
        raise ValueError("format catalog is empty")

    ratio = width / height
    closest: MediaFormat | None = None
    min_diff = math.inf

    for fmt in catalog:
        diff = abs(ratio - fmt.aspect_ratio)
        if diff < min_diff:
            min_diff = diff
            closest = fmt

    assert closest is not None
    return closest


def detect_format(width: int, height: int, catalog: FormatCatalog) -> str:
    """Formatted ratio of the closest catalog entry, or ``"0:0"`` for unknown sizes."""
    if width <= 0 or height <= 0:
        return UNKNOWN_RATIO
    return match_format(width, height, catalog).formatted_ratio


def rationalize(ratio: float, max_denominator: int = DEFAULT_MAX_DENOMINATOR) -> tuple[int, int]:
    """Nearest ``(numerator, denominator)`` to ``ratio`` with denominator <= bound.

    Every denominator from 1 to the bound is tried with its nearest
    numerator; the first pair with the smallest error wins, then the
    pair is reduced to lowest terms.
    """
    if max_denominator < 1:
        raise ValueError(f"max_denominator must be >= 1, got {max_denominator}")
    if not math.isfinite(ratio) or ratio < 0:
        raise ValueError(f"ratio must be a finite non-negative number, got {ratio}")

    best_num, best_den = 0, 1
    min_error = math.inf
    for den in range(1, max_denominator + 1):
        num = round(ratio * den)
        error = abs(ratio - num / den)
        if error < min_error:
            min_error = error
            best_num, best_den = num, den

    divisor = math.gcd(best_num, best_den)
    return best_num // divisor, best_den // divisor


def ratio_label(
    width: int,
    height: int,
    max_denominator: int = DEFAULT_MAX_DENOMINATOR,
) -> str:
    """Readable "W:H" for measured dimensions, e.g. 1920x1080 → "16:9"."""
    if width <= 0 or height <= 0:
        return UNKNOWN_RATIO
    num, den = rationalize(width / height, max_denominator)
    return f"{num}:{den}"
