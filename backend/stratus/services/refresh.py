"""Refresh cycle: fetch observations, aggregate, keep the newest result.

Each call to refresh() is an independent cycle. The temperature-window and
pressure-gradient aggregations run concurrently and fail independently. The
refresher only keeps the newest completed cycle; a slower, older cycle that
finishes after a newer one is discarded.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import settings
from .nws_observations import fetch_station_observations, make_client
from .observation_window import WindowDefinition
from .pressure_gradient import (
    BAY_AREA_STATIONS,
    GradientStations,
    PressureGradientResult,
    compute_gradients,
    latitudinal_gradient,
)
from .reports import RawReport
from .station_aggregator import (
    StationDataError,
    StationFetcher,
    TemperatureWindowResult,
    fetch_pressure_samples,
    fetch_temperature_window,
)

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle. None fields mean no data, never zero."""
    sequence: int
    fetched_at: datetime
    temperature: Optional[TemperatureWindowResult] = None
    gradient: Optional[PressureGradientResult] = None
    regional_gradient_mb_per_deg: Optional[float] = None
    errors: list[str] = field(default_factory=list)


class _CycleFetcher:
    """Shares one fetch per station within a cycle (KSFO feeds both aggregations)."""

    def __init__(self, fetch: StationFetcher):
        self._fetch = fetch
        self._tasks: dict[str, asyncio.Future] = {}

    async def __call__(self, station_id: str) -> list[RawReport]:
        task = self._tasks.get(station_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(station_id))
            self._tasks[station_id] = task
        return await asyncio.shield(task)


def default_window() -> WindowDefinition:
    return WindowDefinition(
        start_hour=settings.window_start_hour,
        end_hour=settings.window_end_hour,
        grace_minutes=settings.window_grace_minutes,
    )


def default_stations() -> GradientStations:
    return GradientStations(
        upwind=settings.upwind_station,
        bay=settings.bay_station,
        inland=settings.inland_station,
    )


class StratusRefresher:
    """Runs refresh cycles and holds the newest result."""

    def __init__(
        self,
        fetch: Optional[StationFetcher] = None,
        window: Optional[WindowDefinition] = None,
        stations: Optional[GradientStations] = None,
        temperature_station: Optional[str] = None,
        regional_stations: Optional[list[str]] = None,
        refresh_interval_min: Optional[int] = None,
    ):
        self._fetch = fetch
        self.window = window or default_window()
        self.stations = stations or default_stations()
        self.temperature_station = temperature_station or settings.temperature_station
        self.regional_stations = (
            list(BAY_AREA_STATIONS) if regional_stations is None else regional_stations
        )
        self.refresh_interval_min = refresh_interval_min or settings.refresh_interval_min
        self._sequence = itertools.count(1)
        self._latest: Optional[RefreshResult] = None
        self._running = False
        self._discarded = 0

    @property
    def latest(self) -> Optional[RefreshResult]:
        return self._latest

    @property
    def stats(self) -> dict:
        return {
            "last_refresh": self._latest.fetched_at.isoformat() if self._latest else None,
            "last_sequence": self._latest.sequence if self._latest else None,
            "discarded_stale": self._discarded,
        }

    async def _temperature(
        self, fetch: StationFetcher, now: datetime, result: RefreshResult,
    ) -> None:
        try:
            result.temperature = await fetch_temperature_window(
                self.temperature_station, fetch, self.window, now,
            )
        except StationDataError as exc:
            logger.warning("Temperature window unavailable: %s", exc)
            result.errors.append(str(exc))

    async def _gradient(
        self, fetch: StationFetcher, now: datetime, result: RefreshResult,
    ) -> None:
        tolerance = timedelta(hours=settings.sample_tolerance_hours)
        try:
            samples = await fetch_pressure_samples(
                self.stations.as_tuple(), fetch, now,
                tolerance=tolerance, hourly_only=settings.gradient_hourly_only,
                synoptic_only=settings.gradient_synoptic_only,
            )
        except StationDataError as exc:
            logger.warning("Pressure gradient unavailable: %s", exc)
            result.errors.append(str(exc))
            return

        for sid in samples.failed_stations:
            result.errors.append(f"Observation fetch for {sid} failed")
        result.gradient = compute_gradients(self.stations, samples.current, samples.past, now)

    async def _regional(
        self, fetch: StationFetcher, now: datetime, result: RefreshResult,
    ) -> None:
        if not self.regional_stations:
            return
        tolerance = timedelta(hours=settings.sample_tolerance_hours)
        try:
            samples = await fetch_pressure_samples(
                self.regional_stations, fetch, now, tolerance=tolerance, hourly_only=False,
            )
        except StationDataError as exc:
            logger.warning("Regional gradient unavailable: %s", exc)
            result.errors.append(str(exc))
            return
        readings = [s for s in samples.current.values() if s is not None]
        result.regional_gradient_mb_per_deg = latitudinal_gradient(readings)

    async def _run_cycle(self, fetch: StationFetcher, now: datetime, result: RefreshResult) -> None:
        cycle_fetch = _CycleFetcher(fetch)
        await asyncio.gather(
            self._temperature(cycle_fetch, now, result),
            self._gradient(cycle_fetch, now, result),
            self._regional(cycle_fetch, now, result),
        )

    async def refresh(self, now: Optional[datetime] = None) -> RefreshResult:
        """Run one refresh cycle and return its result.

        The result is published as `latest` only if no newer cycle has
        already completed.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        result = RefreshResult(sequence=next(self._sequence), fetched_at=now)

        if self._fetch is not None:
            await self._run_cycle(self._fetch, now, result)
        else:
            async with make_client() as client:
                async def fetch(station_id: str) -> list[RawReport]:
                    return await fetch_station_observations(station_id, client)
                await self._run_cycle(fetch, now, result)

        if self._latest is None or result.sequence > self._latest.sequence:
            self._latest = result
            logger.info(
                "Refresh #%d: max_temp=%s max_dew=%s onshore=%s offshore=%s errors=%d",
                result.sequence,
                result.temperature.max_temp_f if result.temperature else None,
                result.temperature.max_dewpoint_f if result.temperature else None,
                result.gradient.onshore_gradient_mb if result.gradient else None,
                result.gradient.offshore_gradient_mb if result.gradient else None,
                len(result.errors),
            )
        else:
            self._discarded += 1
            logger.debug(
                "Discarding stale refresh #%d (newest is #%d)",
                result.sequence, self._latest.sequence,
            )
        return result

    async def run(self) -> None:
        """Refresh on a fixed interval until stopped or cancelled."""
        self._running = True
        logger.info("Refresher starting with %d min interval", self.refresh_interval_min)
        while self._running:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Refresh cycle failed: %s", exc, exc_info=True)
            await asyncio.sleep(self.refresh_interval_min * 60)

    def stop(self) -> None:
        self._running = False
