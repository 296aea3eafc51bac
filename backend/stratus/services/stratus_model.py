"""Empirical KSFO marine stratus forecast.

Stratus Index (SI) = previous evening max temperature - max dewpoint (F).
The SI selects a climatological row giving onset/end hour (UTC) and the
chance of no ceiling. That base probability is then scaled by a fixed,
ordered chain of factors: afternoon dewpoint, monthly onshore/offshore
gradient thresholds, strong-gradient bonuses, inversion height, synoptic
trigger and patterns, and the 2000 ft wind. The model is a pure function of
its inputs; nothing is fetched or cached here.
"""

import bisect
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from ..config import settings
from .solar import sunrise_utc
from .units import round_half_hour

# (SI, onset hour Z, end hour Z, no-ceiling probability %)
# Higher SI (drier evening air) means later onset, earlier clearing.
TIMING_TABLE: tuple[tuple[int, float, float, float], ...] = (
    (9, 1.0, 20.0, 2.0),
    (10, 2.0, 19.5, 3.0),
    (11, 3.0, 19.0, 4.0),
    (12, 4.0, 19.0, 5.0),
    (13, 5.0, 18.5, 7.0),
    (14, 6.0, 18.0, 10.0),
    (15, 7.0, 18.0, 13.0),
    (16, 8.0, 17.5, 16.0),
    (17, 9.0, 17.0, 20.0),
    (18, 10.0, 17.0, 27.0),
    (19, 10.5, 16.5, 35.0),
    (20, 11.0, 16.5, 45.0),
    (21, 12.0, 16.0, 55.0),
    (22, 12.5, 16.0, 65.0),
    (23, 13.0, 15.5, 75.0),
    (24, 13.5, 15.5, 82.0),
    (25, 14.0, 15.0, 88.0),
)
_TABLE_KEYS = [row[0] for row in TIMING_TABLE]

# Month -> (minimum onshore gradient, maximum offshore gradient), mb
MONTHLY_THRESHOLDS: dict[int, tuple[float, float]] = {
    1: (2.5, -1.0),
    2: (2.5, -1.5),
    3: (2.0, -2.0),
    4: (1.5, -2.5),
    5: (1.0, -3.0),
    6: (0.5, -3.5),
    7: (0.5, -3.5),
    8: (0.5, -3.5),
    9: (1.0, -3.0),
    10: (1.5, -2.5),
    11: (2.0, -2.0),
    12: (2.5, -1.0),
}
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

PROBABILITY_MIN = 5.0
PROBABILITY_MAX = 95.0

INVERSION_CUTOFF_FT = 500.0
INVERSION_SHALLOW_FT = 1200.0
INVERSION_VERY_SHALLOW_FT = 1000.0

DEWPOINT_MILD_F = 45.0
DEWPOINT_SEVERE_F = 42.0

THRESHOLD_BUFFER_MB = 0.5
STRONG_ONSHORE_MB = 3.6
STRONG_OFFSHORE_MB = 3.4

TRIGGER_ONSET_CAP_Z = 3.0

# Marine layer burn-off rate after sunrise
BURN_OFF_RATE_FT_PER_HR = 200.0

TRIGGERS = ("deepening_trough", "shortwave_trough", "longwave_trough", "shallow_front")
TRIGGER_NAMES = {
    "deepening_trough": "Deepening trough",
    "shortwave_trough": "Shortwave trough",
    "longwave_trough": "Long-wave trough",
    "shallow_front": "Shallow front",
}
PATTERNS = ("thermal_low", "surface_high", "upper_ridge", "upper_trough", "cutoff_low")

CONFIDENCE_LOW = "Low"
CONFIDENCE_MEDIUM = "Medium"
CONFIDENCE_HIGH = "High"


@dataclass(frozen=True)
class TimingRow:
    stratus_index: int
    onset_hour_z: float
    end_hour_z: float
    no_ceiling_pct: float


@dataclass(frozen=True)
class ForecastInputs:
    """Observed indices plus the forecaster's manual entries."""
    max_temp_f: float
    max_dewpoint_f: float
    inversion_base_ft: float
    month: int
    onshore_gradient_mb: Optional[float] = None
    offshore_gradient_mb: Optional[float] = None
    onshore_24h_trend_mb: Optional[float] = None
    offshore_24h_trend_mb: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    wind_speed_kt: Optional[float] = None
    min_afternoon_dewpoint_f: Optional[float] = None
    trigger: Optional[str] = None
    patterns: frozenset[str] = frozenset()
    cloud_base_ft: float = 0.0
    forecast_date: Optional[date] = None
    latitude: float = field(default_factory=lambda: settings.latitude)
    longitude: float = field(default_factory=lambda: settings.longitude)
    upstream_failures: tuple[str, ...] = ()

    @property
    def stratus_index(self) -> float:
        return self.max_temp_f - self.max_dewpoint_f


@dataclass(frozen=True)
class TimeWindow:
    """Decimal UTC hours in [0, 24)."""
    earliest: float
    latest: float
    most_probable: float


@dataclass(frozen=True)
class ForecastResult:
    onset_window: Optional[TimeWindow]
    end_window: Optional[TimeWindow]
    burn_off_hours: float
    probability_pct: float
    confidence: str
    warnings: tuple[str, ...]
    reasoning: str
    stratus_index: float
    base_probability_pct: float
    min_rh_pct: int
    quick_probability_pct: int
    pattern_effects: tuple[str, ...] = ()
    sunrise: Optional[datetime] = None
    burn_off_time: Optional[datetime] = None


# --- Simple indices ---

def estimate_min_rh(max_temp_f: float, max_dewpoint_f: float) -> int:
    """Approximate afternoon minimum RH (%) from the evening T/Td spread."""
    return int(math.floor((max_dewpoint_f - max_temp_f) * 4.4 + 100.0 + 0.5))


def quick_probability(stratus_index: float) -> int:
    """Quick-look stratus probability from SI alone (90% below 13, 20% above 22)."""
    if stratus_index < 13:
        return 90
    if stratus_index > 22:
        return 20
    return int(math.floor(90 - (stratus_index - 13) / (22 - 13) * 70 + 0.5))


def lookup_timing(stratus_index: float) -> TimingRow:
    """Timing row for an SI: nearest-lower row, clamped to the table ends."""
    idx = bisect.bisect_right(_TABLE_KEYS, stratus_index) - 1
    idx = max(0, min(len(TIMING_TABLE) - 1, idx))
    si, onset, end, no_cig = TIMING_TABLE[idx]
    return TimingRow(stratus_index=si, onset_hour_z=onset, end_hour_z=end, no_ceiling_pct=no_cig)


# --- Factors ---

def dewpoint_factor(min_dewpoint_f: float) -> float:
    """Penalty for a dry afternoon: linear 1.0->0.3 over 45-42F, quadratic below."""
    if min_dewpoint_f >= DEWPOINT_MILD_F:
        return 1.0
    if min_dewpoint_f >= DEWPOINT_SEVERE_F:
        span = DEWPOINT_MILD_F - DEWPOINT_SEVERE_F
        return 0.3 + 0.7 * (min_dewpoint_f - DEWPOINT_SEVERE_F) / span
    deficit = min(DEWPOINT_SEVERE_F - min_dewpoint_f, 8.0)
    return max(0.05, 0.3 * (1.0 - deficit / 8.0) ** 2)


def threshold_factor(distance_mb: float, floor: float) -> float:
    """Penalty by distance above (+) or below (-) a gradient threshold.

    1.0 at or beyond the buffer, linear down to 0.7 at the threshold,
    inverse-square below it.
    """
    if distance_mb >= THRESHOLD_BUFFER_MB:
        return 1.0
    if distance_mb >= 0:
        return 0.7 + 0.3 * distance_mb / THRESHOLD_BUFFER_MB
    return max(floor, 0.7 / (1.0 - distance_mb) ** 2)


def inversion_effect(inversion_ft: float) -> tuple[float, float]:
    """(probability factor, onset delay hours) for a shallow inversion."""
    if inversion_ft >= INVERSION_SHALLOW_FT:
        return 1.0, 0.0
    if inversion_ft >= INVERSION_VERY_SHALLOW_FT:
        frac = (INVERSION_SHALLOW_FT - inversion_ft) / (INVERSION_SHALLOW_FT - INVERSION_VERY_SHALLOW_FT)
        return 1.0 - 0.15 * frac, 0.5 * frac
    frac = min(1.0, (INVERSION_VERY_SHALLOW_FT - inversion_ft) / (INVERSION_VERY_SHALLOW_FT - INVERSION_CUTOFF_FT))
    return 0.85 - 0.45 * frac, 0.5 + 1.5 * frac


@dataclass(frozen=True)
class PatternEffect:
    pattern: str
    multiplier: float
    onset_shift_hours: float
    description: str


def pattern_effects(patterns: frozenset[str]) -> list[PatternEffect]:
    """Effects of the active synoptic patterns, in a fixed order.

    Surface high helps only together with a thermal low. Ridge or trough
    aloft combined with a thermal low adds a small synergy.
    """
    thermal_low = "thermal_low" in patterns
    effects: list[PatternEffect] = []

    if thermal_low:
        effects.append(PatternEffect(
            "thermal_low", 1.25, -1.0,
            "Thermal low: strengthens onshore flow (+25%, onset 1 hr earlier)",
        ))
    if "surface_high" in patterns:
        if thermal_low:
            effects.append(PatternEffect(
                "surface_high", 1.15, 0.0,
                "Surface high with thermal low: enhanced pressure gradient (+15%)",
            ))
        else:
            effects.append(PatternEffect(
                "surface_high", 0.85, 0.0,
                "Surface high without thermal low: subsidence, weak gradient (-15%)",
            ))
    if "upper_ridge" in patterns:
        effects.append(PatternEffect(
            "upper_ridge", 0.9, 0.5,
            "Upper ridge: compresses marine layer (-10%, onset 30 min later)",
        ))
    if "upper_trough" in patterns:
        effects.append(PatternEffect(
            "upper_trough", 1.3, -1.0,
            "Upper trough: deepens marine layer (+30%, onset 1 hr earlier)",
        ))
    if "cutoff_low" in patterns:
        effects.append(PatternEffect(
            "cutoff_low", 1.2, -0.5,
            "Cutoff low: deep marine layer, enhanced mixing (+20%, onset 30 min earlier)",
        ))
    if thermal_low and "upper_ridge" in patterns:
        effects.append(PatternEffect(
            "ridge_thermal_low", 1.1, 0.0,
            "Ridge + thermal low synergy: strong inversion over onshore flow (+10%)",
        ))
    if thermal_low and "upper_trough" in patterns:
        effects.append(PatternEffect(
            "trough_thermal_low", 1.05, 0.0,
            "Trough + thermal low synergy (+5%)",
        ))
    return effects


def _wrap_hour(hour: float) -> float:
    return hour % 24.0


def _window(center: float, half_width: float) -> TimeWindow:
    return TimeWindow(
        earliest=_wrap_hour(center - half_width),
        latest=_wrap_hour(center + half_width),
        most_probable=_wrap_hour(center),
    )


def _solar_times(inputs: ForecastInputs, burn_off_hours: float) -> tuple[Optional[datetime], Optional[datetime]]:
    if inputs.forecast_date is None:
        return None, None
    sunrise = sunrise_utc(inputs.forecast_date, inputs.latitude, inputs.longitude)
    if sunrise is None:
        return None, None
    return sunrise, sunrise + timedelta(hours=burn_off_hours)


def forecast_stratus(inputs: ForecastInputs) -> ForecastResult:
    """Run the empirical stratus model.

    Args:
        inputs: Observed SI components, gradients and manual parameters.

    Returns:
        ForecastResult. Never raises for out-of-range inputs; they are clamped.
    """
    si = inputs.stratus_index
    row = lookup_timing(si)
    base_probability = 100.0 - row.no_ceiling_pct
    min_rh = estimate_min_rh(inputs.max_temp_f, inputs.max_dewpoint_f)

    # Marine layer too shallow for stratus at all
    if inputs.inversion_base_ft < INVERSION_CUTOFF_FT:
        return ForecastResult(
            onset_window=None,
            end_window=None,
            burn_off_hours=0.0,
            probability_pct=PROBABILITY_MIN,
            confidence=CONFIDENCE_HIGH,
            warnings=(
                f"Base inversion {inputs.inversion_base_ft:.0f} ft is below "
                f"{INVERSION_CUTOFF_FT:.0f} ft: marine layer too shallow for stratus",
            ),
            reasoning=f"SI {si:g}: inversion below {INVERSION_CUTOFF_FT:.0f} ft, no stratus expected",
            stratus_index=si,
            base_probability_pct=base_probability,
            min_rh_pct=min_rh,
            quick_probability_pct=quick_probability(si),
        )

    probability = base_probability
    onset = row.onset_hour_z
    end = row.end_hour_z
    confidence: Optional[str] = None
    warnings: list[str] = []
    steps: list[str] = [f"SI {si:g} -> row {row.stratus_index} base {base_probability:.0f}%"]

    # Afternoon dewpoint
    if inputs.min_afternoon_dewpoint_f is not None and inputs.min_afternoon_dewpoint_f < DEWPOINT_MILD_F:
        factor = dewpoint_factor(inputs.min_afternoon_dewpoint_f)
        probability *= factor
        steps.append(f"dewpoint x{factor:.2f}")
        if inputs.min_afternoon_dewpoint_f < DEWPOINT_SEVERE_F:
            confidence = CONFIDENCE_HIGH
            warnings.append(
                f"Very dry afternoon: min dewpoint {inputs.min_afternoon_dewpoint_f:.0f}F "
                f"below {DEWPOINT_SEVERE_F:.0f}F strongly suppresses stratus"
            )
        else:
            warnings.append(
                f"Dry afternoon: min dewpoint {inputs.min_afternoon_dewpoint_f:.0f}F "
                f"below {DEWPOINT_MILD_F:.0f}F reduces stratus chances"
            )

    month = max(1, min(12, int(inputs.month)))
    month_name = MONTH_NAMES[month - 1]
    min_onshore, max_offshore = MONTHLY_THRESHOLDS[month]

    # Monthly onshore threshold
    if inputs.onshore_gradient_mb is not None:
        distance = inputs.onshore_gradient_mb - min_onshore
        if distance < THRESHOLD_BUFFER_MB:
            factor = threshold_factor(distance, floor=0.1)
            probability *= factor
            steps.append(f"onshore threshold x{factor:.2f}")
            if distance < 0:
                warnings.append(
                    f"Onshore gradient {inputs.onshore_gradient_mb:+.1f} mb is {-distance:.1f} mb "
                    f"below the {month_name} minimum of {min_onshore:+.1f} mb"
                )
            else:
                warnings.append(
                    f"Onshore gradient {inputs.onshore_gradient_mb:+.1f} mb is only {distance:.1f} mb "
                    f"above the {month_name} minimum of {min_onshore:+.1f} mb"
                )

    # Monthly offshore threshold
    if inputs.offshore_gradient_mb is not None:
        distance = inputs.offshore_gradient_mb - max_offshore
        if distance < THRESHOLD_BUFFER_MB:
            factor = threshold_factor(distance, floor=0.05)
            probability *= factor
            steps.append(f"offshore threshold x{factor:.2f}")
            if distance < 0:
                warnings.append(
                    f"Offshore gradient {inputs.offshore_gradient_mb:+.1f} mb is {-distance:.1f} mb "
                    f"beyond the {month_name} limit of {max_offshore:+.1f} mb"
                )
            else:
                warnings.append(
                    f"Offshore gradient {inputs.offshore_gradient_mb:+.1f} mb is within {distance:.1f} mb "
                    f"of the {month_name} limit of {max_offshore:+.1f} mb"
                )

    # Strong gradients
    if inputs.onshore_gradient_mb is not None and inputs.onshore_gradient_mb >= STRONG_ONSHORE_MB:
        probability *= 1.2
        steps.append("strong onshore x1.20")
        trend = inputs.onshore_24h_trend_mb
        if trend is not None and trend > 0:
            onset -= trend
            steps.append(f"rising onshore trend onset -{trend:.1f}h")
    if inputs.offshore_gradient_mb is not None and inputs.offshore_gradient_mb >= STRONG_OFFSHORE_MB:
        probability *= 0.7
        steps.append("strong offshore x0.70")
        trend = inputs.offshore_24h_trend_mb
        if trend is not None and trend > 0:
            onset += trend
            steps.append(f"rising offshore trend onset +{trend:.1f}h")

    # Shallow inversion
    if inputs.inversion_base_ft < INVERSION_SHALLOW_FT:
        factor, delay = inversion_effect(inputs.inversion_base_ft)
        probability *= factor
        onset += delay
        steps.append(f"inversion x{factor:.2f} onset +{delay:.1f}h")
        warnings.append(
            f"Shallow inversion at {inputs.inversion_base_ft:.0f} ft: "
            f"reduced chances, onset delayed about {delay:.1f} hr"
        )

    # Synoptic trigger
    if inputs.trigger in TRIGGERS:
        onset = min(onset, TRIGGER_ONSET_CAP_Z)
        probability *= 1.3
        confidence = CONFIDENCE_HIGH
        steps.append(f"{TRIGGER_NAMES[inputs.trigger].lower()} x1.30")

    # Synoptic patterns
    effects = pattern_effects(frozenset(inputs.patterns))
    for effect in effects:
        probability *= effect.multiplier
        onset += effect.onset_shift_hours
    if effects:
        steps.append("patterns x" + "x".join(f"{e.multiplier:.2f}" for e in effects))

    # 2000 ft wind
    if (
        inputs.wind_direction_deg is not None
        and inputs.wind_speed_kt is not None
        and 240 <= inputs.wind_direction_deg <= 300
        and inputs.wind_speed_kt > 10
    ):
        onset -= 1.0
        probability *= 1.1
        steps.append("westerly 2000 ft wind x1.10 onset -1h")

    if confidence is None:
        if si < 10 or si > 22:
            confidence = CONFIDENCE_HIGH
        elif inputs.upstream_failures:
            confidence = CONFIDENCE_LOW
        else:
            confidence = CONFIDENCE_MEDIUM

    for failure in inputs.upstream_failures:
        warnings.append(f"Automated data unavailable ({failure}): values may be stale or manual")

    probability = max(PROBABILITY_MIN, min(PROBABILITY_MAX, probability))
    probability = round(probability, 1)
    onset = round_half_hour(_wrap_hour(onset))
    end = round_half_hour(_wrap_hour(end))

    burn_off_hours = max(0.0, (inputs.inversion_base_ft - inputs.cloud_base_ft) / BURN_OFF_RATE_FT_PER_HR)
    burn_off_hours = round(burn_off_hours, 1)
    sunrise, burn_off_time = _solar_times(inputs, burn_off_hours)

    return ForecastResult(
        onset_window=_window(onset, 1.0),
        end_window=_window(end, 0.5),
        burn_off_hours=burn_off_hours,
        probability_pct=probability,
        confidence=confidence,
        warnings=tuple(warnings),
        reasoning="; ".join(steps) + f" -> {probability:.0f}%",
        stratus_index=si,
        base_probability_pct=base_probability,
        min_rh_pct=min_rh,
        quick_probability_pct=quick_probability(si),
        pattern_effects=tuple(e.description for e in effects),
        sunrise=sunrise,
        burn_off_time=burn_off_time,
    )
