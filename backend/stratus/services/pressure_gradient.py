"""Coastal pressure gradients and their 24-hour trends.

offshore = upwind coastal station (KACV) - bay station (KSFO)
onshore  = bay station (KSFO) - inland station (KSMF)

A gradient is None unless both of its stations reported; a trend is None
unless all six samples (three stations, now and 24h ago) are present.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Sequence

from .reports import StationSample

# Trend classification threshold (mb over 24 hours)
TREND_THRESHOLD_MB = 0.5


@dataclass(frozen=True)
class StationReading:
    """Current pressure reading shown per station."""
    pressure_mb: float
    timestamp: datetime


@dataclass
class PressureGradientResult:
    """Gradients (mb) and 24h trends; None means not computable."""
    offshore_gradient_mb: Optional[float]
    onshore_gradient_mb: Optional[float]
    offshore_24h_trend_mb: Optional[float]
    onshore_24h_trend_mb: Optional[float]
    timestamp: datetime
    stations: dict[str, Optional[StationReading]] = field(default_factory=dict)
    missing_stations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GradientStations:
    upwind: str
    bay: str
    inland: str

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.upwind, self.bay, self.inland)


def pressure_difference(a_mb: float, b_mb: float) -> float:
    """a - b rounded to 0.1 mb."""
    return round(a_mb - b_mb, 1)


def _difference(
    a: Optional[StationSample],
    b: Optional[StationSample],
) -> Optional[float]:
    if a is None or b is None:
        return None
    return pressure_difference(a.pressure_mb, b.pressure_mb)


def classify_trend(trend_mb: Optional[float]) -> Optional[str]:
    """Classify a 24h gradient change as rising/falling/steady."""
    if trend_mb is None:
        return None
    if trend_mb > TREND_THRESHOLD_MB:
        return "rising"
    elif trend_mb < -TREND_THRESHOLD_MB:
        return "falling"
    return "steady"


def compute_gradients(
    stations: GradientStations,
    current: Mapping[str, Optional[StationSample]],
    past: Mapping[str, Optional[StationSample]],
    timestamp: datetime,
) -> PressureGradientResult:
    """Combine paired station pressures into gradients and 24h trends.

    Args:
        stations: Upwind, bay and inland station ids.
        current: Samples nearest to now, keyed by station id.
        past: Samples nearest to 24 hours ago, keyed by station id.
        timestamp: Time the result is computed for.

    Returns:
        PressureGradientResult with None wherever data was insufficient.
    """
    up_now = current.get(stations.upwind)
    bay_now = current.get(stations.bay)
    in_now = current.get(stations.inland)

    offshore = _difference(up_now, bay_now)
    onshore = _difference(bay_now, in_now)

    offshore_trend: Optional[float] = None
    onshore_trend: Optional[float] = None
    past_samples = [past.get(sid) for sid in stations.as_tuple()]
    if offshore is not None and onshore is not None and all(s is not None for s in past_samples):
        up_past, bay_past, in_past = past_samples
        offshore_trend = round(offshore - _difference(up_past, bay_past), 1)
        onshore_trend = round(onshore - _difference(bay_past, in_past), 1)

    readings: dict[str, Optional[StationReading]] = {}
    missing: list[str] = []
    for sid in stations.as_tuple():
        sample = current.get(sid)
        if sample is None:
            missing.append(sid)
            readings[sid] = None
        else:
            readings[sid] = StationReading(pressure_mb=sample.pressure_mb, timestamp=sample.timestamp)

    return PressureGradientResult(
        offshore_gradient_mb=offshore,
        onshore_gradient_mb=onshore,
        offshore_24h_trend_mb=offshore_trend,
        onshore_24h_trend_mb=onshore_trend,
        timestamp=timestamp,
        stations=readings,
        missing_stations=missing,
    )


# Bay Area stations for the north-south regional gradient (lat, lon)
BAY_AREA_STATIONS: dict[str, tuple[float, float]] = {
    "KSFO": (37.62, -122.38),
    "KOAK": (37.72, -122.22),
    "KSJC": (37.36, -121.93),
    "KHWD": (37.66, -122.12),
    "KPAO": (37.46, -122.11),
}


def latitudinal_gradient(
    readings: Sequence[StationSample],
    coordinates: Mapping[str, tuple[float, float]] = BAY_AREA_STATIONS,
) -> Optional[float]:
    """North-south pressure gradient in mb per degree latitude.

    Uses the northernmost and southernmost stations with a reading; positive
    means higher pressure to the north. None with fewer than two usable
    stations or no latitude separation.
    """
    located = [
        (coordinates[s.station_id][0], s.pressure_mb)
        for s in readings
        if s.station_id in coordinates
    ]
    if len(located) < 2:
        return None

    located.sort(key=lambda item: item[0], reverse=True)
    north_lat, north_p = located[0]
    south_lat, south_p = located[-1]
    lat_diff = north_lat - south_lat
    if lat_diff <= 0:
        return None
    return round((north_p - south_p) / lat_diff, 1)
