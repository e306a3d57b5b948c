from __future__ import annotations

import math

import pytest

from border_dashboard.preprocess.bands import (
    ConfidenceBand,
    error_ranges,
    interpolate_bands,
    parse_band,
)

LEFT = ConfidenceBand(p75=(100.0, 200.0), p90=(50.0, 250.0))
RIGHT = ConfidenceBand(p75=(300.0, 400.0), p90=(250.0, 450.0))


def test_interpolate_bands_fills_between_known_steps_only() -> None:
    bands = interpolate_bands({2: LEFT, 6: RIGHT}, 8)

    assert bands[0] is None
    assert bands[1] is None
    assert bands[2] is LEFT
    assert bands[6] is RIGHT
    assert bands[7] is None
    middle = bands[4]
    assert middle is not None
    assert middle.p75 == pytest.approx((200.0, 300.0))
    assert middle.p90 == pytest.approx((150.0, 350.0))
    quarter = bands[3]
    assert quarter is not None
    assert quarter.p75 == pytest.approx((150.0, 250.0))


def test_interpolate_bands_single_known_step_and_out_of_range_keys() -> None:
    bands = interpolate_bands({1: LEFT, 9: RIGHT, -1: RIGHT}, 4)

    assert bands == [None, LEFT, None, None]


def test_interpolate_bands_length_contract() -> None:
    assert interpolate_bands({}, 3) == [None, None, None]
    assert interpolate_bands({0: LEFT}, 0) == []
    with pytest.raises(ValueError, match="length"):
        interpolate_bands({}, -1)


def test_parse_band_validates_pairs() -> None:
    band = parse_band({"p75": [1, 2], "p90": [0, 3]})
    assert band == ConfidenceBand(p75=(1.0, 2.0), p90=(0.0, 3.0))
    assert band.to_dict() == {"p75": [1.0, 2.0], "p90": [0.0, 3.0]}

    with pytest.raises(ValueError, match="p90"):
        parse_band({"p75": [1, 2], "p90": [0]})
    with pytest.raises(ValueError, match="p75"):
        parse_band({"p75": "1,2", "p90": [0, 3]})
    with pytest.raises(ValueError, match="two numbers"):
        parse_band({"p75": [None, 10], "p90": [1, 2]})


def test_error_ranges_round_symmetric_percentages() -> None:
    assert error_ranges(10000.0) == {5: (9500, 10500), 10: (9000, 11000)}
    assert error_ranges(math.nan) == {}
    assert error_ranges(200.0, percents=(50,)) == {50: (100, 300)}
