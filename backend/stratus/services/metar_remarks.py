"""Decode fixed-format METAR remark groups.

The NWS observation API exposes the rounded temperature and dewpoint but not
the precise remark groups, so they are read back out of the raw text:

  T01390083  temperature/dewpoint in tenths C (sign digit 1 = negative)
  SLP146     sea-level pressure, tenths of mb with the leading 9/10 dropped
  A2992      altimeter setting, hundredths of inHg

Decoding is total: anything missing or malformed is returned as None.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .reports import RawReport
from .units import celsius_to_fahrenheit, inhg_to_mb

_RMK_RE = re.compile(r"\bRMK\b")
_T_GROUP_RE = re.compile(r"\bT([01])(\d{3})([01])(\d{3})\b")
_SLP_RE = re.compile(r"\bSLP(\d{3})\b")
_ALTIMETER_RE = re.compile(r"\bA(\d{4})\b")

# SLP values below this carry an implied "10", at or above it an implied "9"
SLP_SPLIT = 500


@dataclass(frozen=True)
class DecodedRemarks:
    """Values decoded from a report's remarks. None means the group was absent."""
    max_temp_f: Optional[int] = None
    max_dewpoint_f: Optional[int] = None
    sea_level_pressure_mb: Optional[float] = None
    altimeter_mb: Optional[float] = None


def _decode_tenths(sign_digit: str, digits: str) -> float:
    sign = -1.0 if sign_digit == "1" else 1.0
    return sign * int(digits) / 10.0


def decode_sea_level_pressure(digits: str) -> float:
    """Expand a 3-digit SLP group to millibars (146 -> 1014.6, 523 -> 952.3)."""
    value = int(digits)
    if value < SLP_SPLIT:
        return round(1000.0 + value / 10.0, 1)
    return round(900.0 + value / 10.0, 1)


def decode_remarks(raw_text: Optional[str]) -> DecodedRemarks:
    """Decode temperature, dewpoint, SLP and altimeter from a raw report.

    Args:
        raw_text: Full raw METAR text, may be empty or None.

    Returns:
        DecodedRemarks; every field is None when the text has no RMK section.
    """
    raw = (raw_text or "").strip()
    marker = _RMK_RE.search(raw)
    if marker is None:
        return DecodedRemarks()

    remarks = raw[marker.start():]

    max_temp_f: Optional[int] = None
    max_dewpoint_f: Optional[int] = None
    t_match = _T_GROUP_RE.search(remarks)
    if t_match:
        max_temp_f = celsius_to_fahrenheit(_decode_tenths(t_match.group(1), t_match.group(2)))
        max_dewpoint_f = celsius_to_fahrenheit(_decode_tenths(t_match.group(3), t_match.group(4)))

    slp_mb: Optional[float] = None
    slp_match = _SLP_RE.search(remarks)
    if slp_match:
        slp_mb = decode_sea_level_pressure(slp_match.group(1))

    # The altimeter group sits in the body ahead of RMK. It is only read from
    # reports that have a remarks section, so a truncated or non-METAR text
    # with a stray "Annnn" token decodes to nothing.
    altimeter_mb: Optional[float] = None
    alt_match = _ALTIMETER_RE.search(raw)
    if alt_match:
        altimeter_mb = inhg_to_mb(int(alt_match.group(1)) / 100.0)

    return DecodedRemarks(
        max_temp_f=max_temp_f,
        max_dewpoint_f=max_dewpoint_f,
        sea_level_pressure_mb=slp_mb,
        altimeter_mb=altimeter_mb,
    )


def report_pressure_mb(report: RawReport) -> Optional[float]:
    """Pressure a report contributes to gradients: SLP, then altimeter, then API field."""
    decoded = decode_remarks(report.raw_text)
    if decoded.sea_level_pressure_mb is not None:
        return decoded.sea_level_pressure_mb
    if decoded.altimeter_mb is not None:
        return decoded.altimeter_mb
    return report.barometric_pressure_mb
