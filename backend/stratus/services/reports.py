"""Observation records passed between the fetcher, selectors and aggregators."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RawReport:
    """One METAR observation for one station, as returned by the data source."""
    station_id: str
    timestamp: datetime  # aware, UTC
    raw_text: str = ""
    temperature_c: Optional[float] = None
    dewpoint_c: Optional[float] = None
    barometric_pressure_mb: Optional[float] = None


@dataclass(frozen=True)
class WindowedObservation:
    """A report annotated with its window membership."""
    report: RawReport
    in_window: bool
    is_hourly: bool


@dataclass(frozen=True)
class StationSample:
    """Pressure sample nearest to a target instant."""
    station_id: str
    pressure_mb: float
    timestamp: datetime
