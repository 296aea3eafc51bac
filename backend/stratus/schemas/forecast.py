"""Pydantic schemas for the stratus API."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

Trigger = Literal["deepening_trough", "shortwave_trough", "longwave_trough", "shallow_front"]
Pattern = Literal["thermal_low", "surface_high", "upper_ridge", "upper_trough", "cutoff_low"]


class ForecastRequest(BaseModel):
    """Manual forecaster inputs.

    Observed values left out are filled from the latest refresh.
    """
    inversion_base_ft: float
    month: Optional[int] = None
    max_temp_f: Optional[float] = None
    max_dewpoint_f: Optional[float] = None
    onshore_gradient_mb: Optional[float] = None
    offshore_gradient_mb: Optional[float] = None
    onshore_24h_trend_mb: Optional[float] = None
    offshore_24h_trend_mb: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    wind_speed_kt: Optional[float] = None
    min_afternoon_dewpoint_f: Optional[float] = None
    trigger: Optional[Trigger] = None
    patterns: list[Pattern] = Field(default_factory=list)
    cloud_base_ft: float = 0.0
    forecast_date: Optional[date] = None


class TimeWindowOut(BaseModel):
    earliest: float
    latest: float
    most_probable: float


class ForecastResponse(BaseModel):
    onset_window: Optional[TimeWindowOut] = None
    end_window: Optional[TimeWindowOut] = None
    burn_off_hours: float
    probability_pct: float
    confidence: str
    warnings: list[str]
    reasoning: str
    stratus_index: float
    base_probability_pct: float
    min_rh_pct: int
    quick_probability_pct: int
    pattern_effects: list[str]
    sunrise: Optional[str] = None
    burn_off_time: Optional[str] = None


class TemperatureWindowOut(BaseModel):
    max_temp_f: Optional[int] = None
    max_dewpoint_f: Optional[int] = None
    max_temp_c: Optional[float] = None
    max_dewpoint_c: Optional[float] = None
    data_source: str
    timestamp: str
    time_z: str


class StationReadingOut(BaseModel):
    pressure_mb: float
    pressure_inhg: float
    timestamp: str
    time_label: str


class PressureGradientOut(BaseModel):
    offshore_gradient_mb: Optional[float] = None
    onshore_gradient_mb: Optional[float] = None
    offshore_24h_trend_mb: Optional[float] = None
    onshore_24h_trend_mb: Optional[float] = None
    offshore_trend: Optional[str] = None
    onshore_trend: Optional[str] = None
    timestamp: str
    stations: dict[str, Optional[StationReadingOut]]
    missing_stations: list[str]


class ObservationsResponse(BaseModel):
    sequence: int
    fetched_at: str
    temperature: Optional[TemperatureWindowOut] = None
    gradient: Optional[PressureGradientOut] = None
    regional_gradient_mb_per_deg: Optional[float] = None
    errors: list[str]


class SunriseResponse(BaseModel):
    date: str
    sunrise: Optional[str] = None
    sunrise_z: str
