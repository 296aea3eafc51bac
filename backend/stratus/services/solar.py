"""Sunrise time for the forecast point.

Uses astral's solar position with its default -0.833 deg horizon
(refraction plus solar semi-diameter).
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from astral import Observer
from astral.sun import sunrise

logger = logging.getLogger(__name__)


def sunrise_utc(
    target_date: date,
    latitude: float,
    longitude: float,
) -> Optional[datetime]:
    """Sunrise for a UTC date at a point.

    Args:
        target_date: Calendar date (UTC).
        latitude: Decimal degrees, positive north.
        longitude: Decimal degrees, positive east.

    Returns:
        Aware UTC datetime truncated to the minute, or None in polar day/night.
    """
    observer = Observer(latitude=latitude, longitude=longitude)
    try:
        result = sunrise(observer, date=target_date, tzinfo=timezone.utc)
    except ValueError as exc:
        # astral raises when the sun never crosses the horizon that day
        logger.debug("No sunrise at %.2f,%.2f on %s: %s", latitude, longitude, target_date, exc)
        return None
    return result.replace(second=0, microsecond=0)


def format_hhmmz(moment: Optional[datetime]) -> str:
    if moment is None:
        return "--"
    return f"{moment:%H%M}Z"
