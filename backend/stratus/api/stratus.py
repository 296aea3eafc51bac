"""Stratus endpoints: observations, manual refresh, forecast, sunrise."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException

from ..config import settings
from ..schemas.forecast import (
    ForecastRequest,
    ForecastResponse,
    ObservationsResponse,
    SunriseResponse,
)
from ..services.observation_window import format_pressure_timestamp, format_timestamp
from ..services.pressure_gradient import classify_trend
from ..services.refresh import RefreshResult, StratusRefresher
from ..services.solar import format_hhmmz, sunrise_utc
from ..services.stratus_model import ForecastInputs, ForecastResult, TimeWindow, forecast_stratus
from ..services.units import fahrenheit_to_celsius, mb_to_inhg

logger = logging.getLogger(__name__)
router = APIRouter()

_refresher: Optional[StratusRefresher] = None


def set_refresher(refresher: Optional[StratusRefresher]) -> None:
    global _refresher
    _refresher = refresher


def get_refresher() -> StratusRefresher:
    global _refresher
    if _refresher is None:
        _refresher = StratusRefresher()
    return _refresher


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _celsius(fahrenheit: Optional[int]) -> Optional[float]:
    return fahrenheit_to_celsius(fahrenheit) if fahrenheit is not None else None


def _observations_payload(result: RefreshResult) -> dict:
    temperature = None
    if result.temperature is not None:
        t = result.temperature
        temperature = {
            "max_temp_f": t.max_temp_f,
            "max_dewpoint_f": t.max_dewpoint_f,
            "max_temp_c": _celsius(t.max_temp_f),
            "max_dewpoint_c": _celsius(t.max_dewpoint_f),
            "data_source": t.data_source,
            "timestamp": t.timestamp.isoformat(),
            "time_z": format_timestamp(t.timestamp),
        }

    gradient = None
    if result.gradient is not None:
        g = result.gradient
        gradient = {
            "offshore_gradient_mb": g.offshore_gradient_mb,
            "onshore_gradient_mb": g.onshore_gradient_mb,
            "offshore_24h_trend_mb": g.offshore_24h_trend_mb,
            "onshore_24h_trend_mb": g.onshore_24h_trend_mb,
            "offshore_trend": classify_trend(g.offshore_24h_trend_mb),
            "onshore_trend": classify_trend(g.onshore_24h_trend_mb),
            "timestamp": g.timestamp.isoformat(),
            "stations": {
                sid: (
                    {
                        "pressure_mb": r.pressure_mb,
                        "pressure_inhg": mb_to_inhg(r.pressure_mb),
                        "timestamp": r.timestamp.isoformat(),
                        "time_label": format_pressure_timestamp(r.timestamp),
                    }
                    if r is not None else None
                )
                for sid, r in g.stations.items()
            },
            "missing_stations": list(g.missing_stations),
        }

    return {
        "sequence": result.sequence,
        "fetched_at": result.fetched_at.isoformat(),
        "temperature": temperature,
        "gradient": gradient,
        "regional_gradient_mb_per_deg": result.regional_gradient_mb_per_deg,
        "errors": list(result.errors),
    }


def _window_payload(w: Optional[TimeWindow]) -> Optional[dict]:
    if w is None:
        return None
    return {"earliest": w.earliest, "latest": w.latest, "most_probable": w.most_probable}


def _forecast_payload(result: ForecastResult) -> dict:
    return {
        "onset_window": _window_payload(result.onset_window),
        "end_window": _window_payload(result.end_window),
        "burn_off_hours": result.burn_off_hours,
        "probability_pct": result.probability_pct,
        "confidence": result.confidence,
        "warnings": list(result.warnings),
        "reasoning": result.reasoning,
        "stratus_index": result.stratus_index,
        "base_probability_pct": result.base_probability_pct,
        "min_rh_pct": result.min_rh_pct,
        "quick_probability_pct": result.quick_probability_pct,
        "pattern_effects": list(result.pattern_effects),
        "sunrise": _iso(result.sunrise),
        "burn_off_time": _iso(result.burn_off_time),
    }


@router.get("/observations", response_model=ObservationsResponse)
async def get_observations():
    """Latest automated observations, refreshing first if there are none yet."""
    refresher = get_refresher()
    result = refresher.latest
    if result is None:
        result = await refresher.refresh()
    return _observations_payload(result)


@router.post("/refresh", response_model=ObservationsResponse)
async def post_refresh():
    """Run a refresh cycle now."""
    result = await get_refresher().refresh()
    return _observations_payload(result)


def _pick(manual: Optional[float], observed: Optional[float], used: list[bool]) -> Optional[float]:
    if manual is not None:
        return manual
    if observed is not None:
        used.append(True)
    return observed


@router.post("/forecast", response_model=ForecastResponse)
async def post_forecast(req: ForecastRequest):
    """Stratus forecast from manual inputs plus the latest observations."""
    refresher = get_refresher()
    latest = refresher.latest
    needs_observed = req.max_temp_f is None or req.max_dewpoint_f is None or (
        req.onshore_gradient_mb is None or req.offshore_gradient_mb is None
    )
    if latest is None and needs_observed:
        latest = await refresher.refresh()

    temperature = latest.temperature if latest else None
    gradient = latest.gradient if latest else None
    used_observed: list[bool] = []

    max_temp = _pick(req.max_temp_f, temperature.max_temp_f if temperature else None, used_observed)
    max_dew = _pick(req.max_dewpoint_f, temperature.max_dewpoint_f if temperature else None, used_observed)
    if max_temp is None or max_dew is None:
        raise HTTPException(
            status_code=422,
            detail="Evening max temperature/dewpoint unavailable; enter them manually",
        )

    def observed(name: str) -> Optional[float]:
        return getattr(gradient, name) if gradient is not None else None

    now = datetime.now(timezone.utc)
    inputs = ForecastInputs(
        max_temp_f=max_temp,
        max_dewpoint_f=max_dew,
        inversion_base_ft=req.inversion_base_ft,
        month=req.month or now.month,
        onshore_gradient_mb=_pick(req.onshore_gradient_mb, observed("onshore_gradient_mb"), used_observed),
        offshore_gradient_mb=_pick(req.offshore_gradient_mb, observed("offshore_gradient_mb"), used_observed),
        onshore_24h_trend_mb=_pick(req.onshore_24h_trend_mb, observed("onshore_24h_trend_mb"), used_observed),
        offshore_24h_trend_mb=_pick(req.offshore_24h_trend_mb, observed("offshore_24h_trend_mb"), used_observed),
        wind_direction_deg=req.wind_direction_deg,
        wind_speed_kt=req.wind_speed_kt,
        min_afternoon_dewpoint_f=req.min_afternoon_dewpoint_f,
        trigger=req.trigger,
        patterns=frozenset(req.patterns),
        cloud_base_ft=req.cloud_base_ft,
        forecast_date=req.forecast_date,
        latitude=settings.latitude,
        longitude=settings.longitude,
        upstream_failures=tuple(latest.errors) if latest and used_observed else (),
    )
    return _forecast_payload(forecast_stratus(inputs))


@router.get("/sunrise", response_model=SunriseResponse)
def get_sunrise(day: Optional[date] = None):
    """Sunrise at the forecast point for a UTC date (default today)."""
    if day is None:
        day = datetime.now(timezone.utc).date()
    sunrise = sunrise_utc(day, settings.latitude, settings.longitude)
    return {
        "date": day.isoformat(),
        "sunrise": _iso(sunrise),
        "sunrise_z": format_hhmmz(sunrise),
    }
