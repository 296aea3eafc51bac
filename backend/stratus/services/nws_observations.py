"""NWS (National Weather Service) API station observation client.

Fetches recent observations for a station from
/stations/{id}/observations and flattens the GeoJSON features into
RawReport records (newest first, as the API returns them).

NWS API docs: https://www.weather.gov/documentation/services-web-api
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from ..config import settings
from .reports import RawReport
from .units import pascals_to_mb

logger = logging.getLogger(__name__)


class ObservationFetchError(Exception):
    """Raised when a station's observations could not be retrieved or parsed."""


def _headers() -> dict[str, str]:
    # NWS requires a User-Agent header identifying the application.
    return {
        "User-Agent": settings.nws_user_agent,
        "Accept": "application/geo+json",
    }


def make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.nws_base_url,
        headers=_headers(),
        timeout=settings.http_timeout_sec,
        follow_redirects=True,
    )


def _quantity(props: dict[str, Any], name: str) -> Optional[float]:
    """Numeric value of an NWS quantity object ({"value": .., "unitCode": ..})."""
    q = props.get(name)
    if not isinstance(q, dict):
        return None
    value = q.get("value")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_observations(station_id: str, data: dict[str, Any]) -> list[RawReport]:
    """Convert an observations GeoJSON payload to RawReports.

    Features without a usable timestamp are skipped.
    """
    reports: list[RawReport] = []
    for feature in data.get("features") or []:
        props = feature.get("properties") or {}
        raw_ts = props.get("timestamp")
        if not raw_ts:
            continue
        try:
            ts = _parse_timestamp(raw_ts)
        except ValueError:
            logger.debug("Skipping %s observation with bad timestamp %r", station_id, raw_ts)
            continue

        pressure_pa = _quantity(props, "barometricPressure")
        reports.append(RawReport(
            station_id=station_id,
            timestamp=ts,
            raw_text=props.get("rawMessage") or "",
            temperature_c=_quantity(props, "temperature"),
            dewpoint_c=_quantity(props, "dewpoint"),
            barometric_pressure_mb=pascals_to_mb(pressure_pa) if pressure_pa is not None else None,
        ))
    return reports


async def fetch_station_observations(
    station_id: str,
    client: Optional[httpx.AsyncClient] = None,
    limit: Optional[int] = None,
) -> list[RawReport]:
    """Fetch recent observations for one station.

    Args:
        station_id: ICAO identifier, e.g. "KSFO".
        client: Shared client; a short-lived one is created if omitted.
        limit: Maximum number of observations (defaults to settings).

    Returns:
        RawReports, newest first.

    Raises:
        ObservationFetchError: on transport, HTTP status or payload errors.
    """
    params = {"limit": limit or settings.observation_limit}
    url = f"/stations/{station_id}/observations"

    try:
        if client is None:
            async with make_client() as own_client:
                resp = await own_client.get(url, params=params)
        else:
            resp = await client.get(url, params=params)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as exc:
        raise ObservationFetchError(
            f"NWS API error for {station_id}: {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, ValueError) as exc:
        raise ObservationFetchError(f"NWS API request for {station_id} failed: {exc}") from exc

    reports = parse_observations(station_id, data)
    logger.debug("Fetched %d observations for %s", len(reports), station_id)
    return reports
