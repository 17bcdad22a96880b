import math

import pytest

from apbd.formatting import chart_colors, format_full, format_short


def test_format_full_groups_with_dots():
    assert format_full(15000000) == "Rp 15.000.000"
    assert format_full(0) == "Rp 0"
    assert format_full(999.4) == "Rp 999"


def test_format_full_rounds_half_up_and_keeps_sign():
    assert format_full(1250.5) == "Rp 1.251"
    assert format_full(-1250.5) == "-Rp 1.251"
    assert format_full(-0.2) == "Rp 0"


def test_format_short_thresholds():
    assert format_short(2_500_000_000_000) == "Rp 2.5T"
    assert format_short(1e12) == "Rp 1.0T"
    assert format_short(1_000_000_000) == "Rp 1.0M"
    assert format_short(1_500_000) == "Rp 1.5Jt"
    assert format_short(1000) == "Rp 1.0K"
    assert format_short(999) == "Rp 999"


def test_format_short_uses_highest_threshold_reached():
    # just under a threshold stays on the lower suffix
    assert format_short(999_999) == "Rp 1000.0K"
    assert format_short(999_999_999) == "Rp 1000.0Jt"
    assert format_short(999_999_999_999) == "Rp 1000.0M"


def test_format_short_rounds_ties_up():
    assert format_short(1_250_000_000) == "Rp 1.3M"
    assert format_short(2_250_000) == "Rp 2.3Jt"
    assert format_short(1_050) == "Rp 1.1K"
    assert format_short(1_240_000_000) == "Rp 1.2M"


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, "abc", None])
def test_non_finite_amounts_are_rejected(bad):
    with pytest.raises(ValueError):
        format_full(bad)
    with pytest.raises(ValueError):
        format_short(bad)


def test_chart_colors_cycle_palette():
    colors = chart_colors(12)
    assert len(colors) == 12
    assert colors[0] == colors[10] == "#3b82f6"
    assert chart_colors(0) == []
