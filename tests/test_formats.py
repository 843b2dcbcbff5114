"""
Tests for format catalog lookup, nearest-format matching and ratio labels.
"""

import pytest

from asset_normalizer.core.errors import DivisionUndefined, InvalidFormatName
from asset_normalizer.core.models.media import FormatCatalog, MediaFormat
from asset_normalizer.core.services.formats import (
    UNKNOWN_RATIO,
    detect_format,
    match_format,
    ratio_label,
    rationalize,
)


class TestCatalog:
    def test_default_order(self, catalog):
        assert catalog.names() == ["square", "portrait", "story", "landscape"]

    def test_lookup_by_name_and_ratio(self, catalog):
        assert catalog.get("story").formatted_ratio == "9:16"
        assert catalog.get("9:16").name == "story"

    def test_unknown_name(self, catalog):
        with pytest.raises(InvalidFormatName) as exc:
            catalog.get("panorama")
        assert "panorama" in str(exc.value)

    def test_unknown_name_is_key_error(self, catalog):
        with pytest.raises(KeyError):
            catalog.get("panorama")

    def test_aspect_ratio_computed(self, catalog):
        assert catalog.get("portrait").aspect_ratio == pytest.approx(0.8)
        assert catalog.get("landscape").size == (1080, 608)

    def test_format_rejects_zero_size(self):
        with pytest.raises(ValueError):
            MediaFormat(name="bad", target_width=0, target_height=10, formatted_ratio="0:1")


class TestMatchFormat:
    @pytest.mark.parametrize(
        "width, height, expected",
        [
            (1000, 1000, "square"),
            (800, 1000, "portrait"),
            (1080, 1920, "story"),
            (1920, 1080, "landscape"),
            (4000, 1000, "landscape"),
            (1, 10, "story"),
        ],
    )
    def test_nearest(self, catalog, width, height, expected):
        assert match_format(width, height, catalog).name == expected

    def test_result_is_catalog_member(self, catalog):
        fmt = match_format(1234, 567, catalog)
        assert fmt in list(catalog)

    def test_idempotent(self, catalog):
        assert match_format(1500, 1000, catalog) == match_format(1500, 1000, catalog)

    def test_tie_goes_to_first_declared(self):
        a = MediaFormat(name="a", target_width=2, target_height=1, formatted_ratio="2:1")
        b = MediaFormat(name="b", target_width=1, target_height=1, formatted_ratio="1:1")
        # 1.5 is equidistant from 2.0 and 1.0
        assert match_format(3, 2, FormatCatalog((a, b))).name == "a"
        assert match_format(3, 2, FormatCatalog((b, a))).name == "b"

    def test_zero_height(self, catalog):
        with pytest.raises(DivisionUndefined):
            match_format(100, 0, catalog)

    def test_empty_catalog(self):
        with pytest.raises(ValueError):
            match_format(10, 10, FormatCatalog())


class TestDetectFormat:
    def test_matched_ratio(self, catalog):
        assert detect_format(1080, 1350, catalog) == "4:5"

    @pytest.mark.parametrize("width, height", [(0, 0), (100, 0), (0, 100)])
    def test_zero_dimensions_sentinel(self, catalog, width, height):
        assert detect_format(width, height, catalog) == UNKNOWN_RATIO


class TestRationalize:
    @pytest.mark.parametrize(
        "ratio, expected",
        [
            (16 / 9, (16, 9)),
            (4 / 3, (4, 3)),
            (1.0, (1, 1)),
            (0.5625, (9, 16)),
            (0.0, (0, 1)),
            (2.0, (2, 1)),
        ],
    )
    def test_known_ratios(self, ratio, expected):
        assert rationalize(ratio) == expected

    def test_lowest_terms(self):
        num, den = rationalize(0.8)
        assert (num, den) == (4, 5)

    def test_bound_respected(self):
        num, den = rationalize(3.14159265, max_denominator=10)
        assert den <= 10
        assert (num, den) == (22, 7)

    def test_bound_one(self):
        assert rationalize(2.4, max_denominator=1) == (2, 1)

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            rationalize(1.5, max_denominator=0)

    @pytest.mark.parametrize("ratio", [-1.0, float("inf"), float("nan")])
    def test_invalid_ratio(self, ratio):
        with pytest.raises(ValueError):
            rationalize(ratio)


class TestRatioLabel:
    def test_full_hd(self):
        assert ratio_label(1920, 1080) == "16:9"

    def test_non_standard(self):
        assert ratio_label(1080, 608) == "135:76"

    def test_zero(self):
        assert ratio_label(0, 1080) == UNKNOWN_RATIO
