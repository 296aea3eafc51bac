"""Unit conversions shared by the decoders and the forecast model.

Temperatures in the model are whole degrees Fahrenheit, pressures in
millibars (hPa) with one decimal, matching how the values are briefed.
"""

import math

# 1 inHg in millibars
INHG_TO_MB = 33.8639


def _round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (toward +inf), independent of float bias."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def celsius_to_fahrenheit(celsius: float) -> int:
    """Convert Celsius to whole degrees Fahrenheit.

    Args:
        celsius: Temperature in degrees C.

    Returns:
        round(c * 9/5 + 32), halves rounded up.
    """
    return int(_round_half_up(celsius * 9.0 / 5.0 + 32.0))


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return round((fahrenheit - 32.0) * 5.0 / 9.0, 1)


def inhg_to_mb(inhg: float) -> float:
    """Convert inches of mercury to millibars, one decimal."""
    return _round_half_up(inhg * INHG_TO_MB, 1)


def mb_to_inhg(mb: float) -> float:
    """Convert millibars to inches of mercury, two decimals."""
    return _round_half_up(mb / INHG_TO_MB, 2)


def pascals_to_mb(pascals: float) -> float:
    """Convert pascals (NWS API pressure unit) to millibars, one decimal."""
    return _round_half_up(pascals / 100.0, 1)


def round_half_hour(hours: float) -> float:
    """Round a decimal hour to the nearest half hour."""
    return math.floor(hours * 2.0 + 0.5) / 2.0
