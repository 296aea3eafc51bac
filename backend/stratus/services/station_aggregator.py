"""Fetch and reduce observations from one or more stations.

Station fetches run concurrently. A failure for one station is logged and
yields None for that station only; it never aborts the other fetches.
Reductions never invent values: running maxima start at None and a missing
sample stays missing.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Sequence

from .metar_remarks import decode_remarks, report_pressure_mb
from .observation_window import (
    WindowDefinition,
    is_hourly,
    is_synoptic,
    latest_timestamp,
    select_window,
    window_label,
)
from .reports import RawReport, StationSample
from .units import celsius_to_fahrenheit

logger = logging.getLogger(__name__)

# Fetch operation supplied by the caller: station id -> reports (newest first)
StationFetcher = Callable[[str], Awaitable[list[RawReport]]]

DEFAULT_SAMPLE_TOLERANCE = timedelta(hours=2)
TREND_LOOKBACK = timedelta(hours=24)


class StationDataError(Exception):
    """Raised when required station data could not be obtained at all."""


@dataclass(frozen=True)
class TemperatureWindowResult:
    """Evening max temperature/dewpoint used for the Stratus Index."""
    max_temp_f: Optional[int]
    max_dewpoint_f: Optional[int]
    data_source: str
    timestamp: datetime


@dataclass
class PressureSamples:
    """Nearest pressure samples per station for now and ~24 hours earlier."""
    current: dict[str, Optional[StationSample]] = field(default_factory=dict)
    past: dict[str, Optional[StationSample]] = field(default_factory=dict)
    failed_stations: list[str] = field(default_factory=list)


async def fetch_stations(
    station_ids: Sequence[str],
    fetch: StationFetcher,
) -> dict[str, Optional[list[RawReport]]]:
    """Fetch reports for several stations concurrently.

    Returns:
        Mapping of station id to its reports, or None where the fetch failed.
    """
    results = await asyncio.gather(
        *(fetch(sid) for sid in station_ids),
        return_exceptions=True,
    )
    by_station: dict[str, Optional[list[RawReport]]] = {}
    for sid, result in zip(station_ids, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.warning("Observation fetch for %s failed: %s", sid, result)
            by_station[sid] = None
        else:
            by_station[sid] = result
    return by_station


def _max_optional(current: Optional[int], value: Optional[int]) -> Optional[int]:
    if value is None:
        return current
    if current is None or value > current:
        return value
    return current


def reduce_temperature_extrema(
    reports: Sequence[RawReport],
) -> tuple[Optional[int], Optional[int]]:
    """Max temperature and dewpoint (F) over the given reports.

    The precise remarks group is preferred per report; the rounded primary
    field is used when the report carries no remarks group.
    """
    max_temp: Optional[int] = None
    max_dew: Optional[int] = None
    for r in reports:
        decoded = decode_remarks(r.raw_text)

        temp_f = decoded.max_temp_f
        if temp_f is None and r.temperature_c is not None:
            temp_f = celsius_to_fahrenheit(r.temperature_c)
        max_temp = _max_optional(max_temp, temp_f)

        dew_f = decoded.max_dewpoint_f
        if dew_f is None and r.dewpoint_c is not None:
            dew_f = celsius_to_fahrenheit(r.dewpoint_c)
        max_dew = _max_optional(max_dew, dew_f)
    return max_temp, max_dew


def nearest_sample(
    reports: Sequence[RawReport],
    target: datetime,
    tolerance: timedelta = DEFAULT_SAMPLE_TOLERANCE,
    hourly_only: bool = False,
    synoptic_only: bool = False,
) -> Optional[StationSample]:
    """Pressure sample closest in time to `target`.

    Only reports with a usable pressure within `tolerance` of the target are
    candidates; `synoptic_only` narrows them to the 6-hourly reports. Ties go
    to the earlier report.
    """
    best: Optional[tuple[timedelta, datetime, RawReport, float]] = None
    for r in reports:
        if hourly_only and not is_hourly(r.timestamp):
            continue
        if synoptic_only and not is_synoptic(r.timestamp):
            continue
        diff = abs(r.timestamp - target)
        if diff > tolerance:
            continue
        pressure = report_pressure_mb(r)
        if pressure is None:
            continue
        key = (diff, r.timestamp)
        if best is None or key < best[:2]:
            best = (diff, r.timestamp, r, pressure)

    if best is None:
        return None
    _, ts, report, pressure = best
    return StationSample(station_id=report.station_id, pressure_mb=pressure, timestamp=ts)


async def fetch_temperature_window(
    station_id: str,
    fetch: StationFetcher,
    window: WindowDefinition,
    now: Optional[datetime] = None,
) -> TemperatureWindowResult:
    """Evening max temperature and dewpoint for one station.

    Raises:
        StationDataError: the fetch failed or returned no observations.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        reports = await fetch(station_id)
    except Exception as exc:
        raise StationDataError(f"Observation fetch for {station_id} failed: {exc}") from exc

    if not reports:
        raise StationDataError(f"No observations available for {station_id}")

    windowed = select_window(reports, window, now=now)
    max_temp, max_dew = reduce_temperature_extrema(windowed)
    if not windowed:
        logger.info("No %s observations in window %s", station_id, window_label(now, window))

    return TemperatureWindowResult(
        max_temp_f=max_temp,
        max_dewpoint_f=max_dew,
        data_source=f"NWS METAR ({station_id}) {window_label(now, window)}",
        timestamp=latest_timestamp(windowed) or now,
    )


async def fetch_pressure_samples(
    station_ids: Sequence[str],
    fetch: StationFetcher,
    now: Optional[datetime] = None,
    tolerance: timedelta = DEFAULT_SAMPLE_TOLERANCE,
    hourly_only: bool = True,
    synoptic_only: bool = False,
) -> PressureSamples:
    """Nearest pressure samples to now and to now-24h for each station.

    Raises:
        StationDataError: every station fetch failed.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    by_station = await fetch_stations(station_ids, fetch)
    samples = PressureSamples()
    for sid in station_ids:
        reports = by_station.get(sid)
        if reports is None:
            samples.failed_stations.append(sid)
            samples.current[sid] = None
            samples.past[sid] = None
            continue
        samples.current[sid] = nearest_sample(reports, now, tolerance, hourly_only, synoptic_only)
        samples.past[sid] = nearest_sample(
            reports, now - TREND_LOOKBACK, tolerance, hourly_only, synoptic_only,
        )
        if samples.current[sid] is None:
            logger.warning("No pressure sample for %s near %s", sid, now.isoformat())

    if station_ids and len(samples.failed_stations) == len(station_ids):
        raise StationDataError(
            f"All pressure station fetches failed: {', '.join(station_ids)}"
        )
    return samples
