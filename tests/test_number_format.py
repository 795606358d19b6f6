import math

import pytest

from CalcEngine import NumberFormat
from CalcEngine import config_manager

E_GLYPH = NumberFormat.SMALL_CAPS_E


def test_integers_render_bare(settings):
    assert NumberFormat.format_result(14.0, settings) == "14"
    assert NumberFormat.format_result(-3.0, settings) == "-3"


def test_fixed_point_strips_trailing_zeros(settings):
    assert NumberFormat.format_result(1 / 3, settings) == "0.333333"
    assert NumberFormat.format_result(0.5, settings) == "0.5"


def test_automatic_switches_to_scientific_at_thresholds(settings):
    assert NumberFormat.format_result(1234567.0, settings) == f"1.234567{E_GLYPH}6"
    assert NumberFormat.format_result(0.0000001, settings) == f"1{E_GLYPH}-7"
    assert NumberFormat.format_result(999999.0, settings) == "999999"


def test_exact_engine_thresholds_are_wider(settings):
    wert = NumberFormat.format_result(
        1234567.0, settings,
        large_threshold=NumberFormat.EXACT_LARGE, small_threshold=NumberFormat.EXACT_SMALL)
    assert wert == "1234567"


def test_special_values(settings):
    assert NumberFormat.format_result(math.inf, settings) == "∞"
    assert NumberFormat.format_result(-math.inf, settings) == "-∞"
    assert NumberFormat.format_result(math.nan, settings) == "NaN"
    assert NumberFormat.format_result(1e-40, settings) == "0"


def test_plain_mode_groups_thousands():
    plain = config_manager.Settings(6, config_manager.PLAIN)
    assert NumberFormat.format_result(1234567.0, plain) == "1,234,567"
    assert NumberFormat.format_result(1234567.5, plain) == "1,234,567.5"


def test_scientific_mode():
    scientific = config_manager.Settings(6, config_manager.SCIENTIFIC)
    assert NumberFormat.format_result(1500.0, scientific) == f"1.5{E_GLYPH}3"
    assert NumberFormat.format_result(5.0, scientific) == "5"


@pytest.mark.parametrize("value, expected", [
    (complex(3, 4), "3 + 4i"),
    (complex(1, -1), "1 - i"),
    (complex(0, 1), "i"),
    (complex(0, -2), "-2i"),
    (complex(2, 1e-12), "2"),
])
def test_complex_rendering(settings, value, expected):
    assert NumberFormat.format_result(value, settings) == expected


def test_add_commas():
    assert NumberFormat.add_commas("-1234.5") == "-1,234.5"
    assert NumberFormat.add_commas("123") == "123"


def test_big_int_rendering(settings):
    assert NumberFormat.format_big_int(123, settings=settings) == "123"
    assert NumberFormat.format_big_int(10 ** 20, settings=settings) == f"1{E_GLYPH}20"
    assert NumberFormat.format_big_int(-(10 ** 16), settings=settings) == f"{NumberFormat.MINUS_SIGN}1{E_GLYPH}16"


def test_big_int_rounds_half_up():
    zwei_stellen = config_manager.Settings(2, config_manager.AUTOMATIC)
    assert NumberFormat.format_big_int(1999999999999999999, settings=zwei_stellen) == f"2{E_GLYPH}18"


def test_big_int_scientific_only_for_whole_numbers():
    scientific = config_manager.Settings(6, config_manager.SCIENTIFIC)
    assert NumberFormat.format_big_int(4500, is_whole_number=True, settings=scientific) == f"4.5{E_GLYPH}3"
    assert NumberFormat.format_big_int(4500, settings=scientific) == "4500"


def test_numerical_string():
    assert NumberFormat.to_numerical_string(2.0) == "2"
    assert NumberFormat.to_numerical_string(0.125, precision=2) == "0.13"
    assert NumberFormat.to_numerical_string(None) == ""
    assert NumberFormat.to_numerical_string(math.nan) == ""
    assert NumberFormat.to_numerical_string(-math.inf) == "-∞"
