import pytest

from avatar_studio.backgrounds import (
    BG_OPTIONS,
    DEFAULT_BACKGROUND,
    css_gradient,
    get_background,
    parse_hex,
    stop_positions,
)
from avatar_studio.errors import InvalidRequest


def test_ids_are_unique():
    ids = [o.id for o in BG_OPTIONS]
    assert len(ids) == len(set(ids))
    assert DEFAULT_BACKGROUND == "best-red"


def test_css_gradient_is_derived_from_stops():
    sunset = get_background("sunset")
    assert sunset.gradient == "linear-gradient(160deg, #e2231a 0%, #ffd600 50%, #3fa9f5 100%)"
    for option in BG_OPTIONS:
        for stop in option.stops:
            assert stop in option.gradient


def test_css_gradient_single_stop():
    assert css_gradient(("#000000",)) == "linear-gradient(135deg, #000000 0%)"


def test_stop_positions():
    assert stop_positions(1) == [0.0]
    assert stop_positions(3) == [0.0, 0.5, 1.0]


def test_parse_hex():
    assert parse_hex("#e2231a") == (226, 35, 26)
    assert parse_hex("fff") == (255, 255, 255)
    with pytest.raises(ValueError):
        parse_hex("#12345")


def test_unknown_background():
    with pytest.raises(InvalidRequest):
        get_background("neon")
