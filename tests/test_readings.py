"""
Tests for ADC to voltage conversion
"""

import pytest

from app.errors import MalformedMessageError
from app.readings import derive_reading, parse_raw_value, scale_voltage


def test_zero_is_zero_volts():
    assert scale_voltage(0) == 0.0


def test_full_scale_is_reference_voltage():
    assert scale_voltage(4095) == 3.3


def test_midscale_reading():
    reading = derive_reading(2048)

    assert reading.raw_value == 2048
    assert reading.scaled_voltage == pytest.approx(1.65, abs=1e-3)


def test_conversion_is_deterministic():
    assert derive_reading(1234) == derive_reading(1234)


def test_numeric_strings_are_accepted():
    """Boards may send the ADC value as a string."""
    assert parse_raw_value("2048") == 2048
    assert parse_raw_value(" 12.5 ") == 12.5
    assert isinstance(parse_raw_value(2048.0), int)


@pytest.mark.parametrize("sensor", ["abc", "", "nan", "inf", True])
def test_non_numeric_values_are_malformed(sensor):
    with pytest.raises(MalformedMessageError):
        derive_reading(sensor)


def test_oversized_integer_is_malformed():
    with pytest.raises(MalformedMessageError):
        derive_reading(int("9" * 400))
