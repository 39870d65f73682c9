"""
ADC reading conversion.

Boards report a raw 12-bit ADC count; the relay converts it to volts
with a fixed linear transform against the 3.3 V reference.
"""

import math
import sys
from dataclasses import dataclass
from typing import Union

from app.errors import MalformedMessageError

REFERENCE_VOLTAGE = 3.3
MAX_ADC_VALUE = 4095


@dataclass(frozen=True)
class DerivedReading:
    raw_value: Union[int, float]
    scaled_voltage: float


def parse_raw_value(sensor: Union[int, float, str]) -> Union[int, float]:
    """Coerce the sensor field to a number, keeping integers integral."""
    if isinstance(sensor, bool):
        raise MalformedMessageError(f"Non-numeric sensor value: {sensor!r}")
    if isinstance(sensor, (int, float)):
        value = sensor
    else:
        try:
            value = float(sensor.strip())
        except ValueError as e:
            raise MalformedMessageError(f"Non-numeric sensor value: {sensor!r}") from e

    if isinstance(value, float):
        if not math.isfinite(value):
            raise MalformedMessageError(f"Non-finite sensor value: {sensor!r}")
        if value.is_integer():
            return int(value)
    elif abs(value) > sys.float_info.max:
        raise MalformedMessageError("Sensor value out of range")
    return value


def scale_voltage(raw_value: Union[int, float]) -> float:
    return raw_value / MAX_ADC_VALUE * REFERENCE_VOLTAGE


def derive_reading(sensor: Union[int, float, str]) -> DerivedReading:
    raw = parse_raw_value(sensor)
    voltage = scale_voltage(raw)
    if not math.isfinite(voltage):
        raise MalformedMessageError("Sensor value out of range")
    return DerivedReading(raw_value=raw, scaled_voltage=voltage)
