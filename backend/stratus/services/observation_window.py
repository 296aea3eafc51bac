"""Diurnal observation windows and routine-report classification.

Routine METARs are issued in the last few minutes of the hour (KSFO at :56),
so the "20Z" observation is usually stamped 1956Z and the "00Z" observation
2356Z. Windows are defined in whole UTC hours, inclusive, and may wrap past
00Z (e.g. 22Z-02Z).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from .reports import RawReport, WindowedObservation

# Minutes of the hour in which routine (hourly) reports are issued
HOURLY_MINUTE_MIN = 53
HOURLY_MINUTE_MAX = 59

# Hours in which the 00/06/12/18Z synoptic reports are issued (e.g. 2356Z)
SYNOPTIC_ISSUE_HOURS = frozenset({5, 11, 17, 23})


@dataclass(frozen=True)
class WindowDefinition:
    """A daily UTC window [start_hour, end_hour], both inclusive.

    grace_minutes admits reports issued that many minutes before the top of
    start_hour. With strict=True membership also depends on the minute: only
    reports on the hour or within grace_minutes before it are counted.
    """
    start_hour: int
    end_hour: int
    grace_minutes: int = 0
    strict: bool = False

    @property
    def span_hours(self) -> int:
        return (self.end_hour - self.start_hour) % 24 + 1


def _hour_in_range(hour: int, start: int, end: int) -> bool:
    if start <= end:
        return start <= hour <= end
    # Wraps past 00Z
    return hour >= start or hour <= end


def _in_grace(ts: datetime, window: WindowDefinition) -> bool:
    if window.grace_minutes <= 0:
        return False
    return ts.hour == (window.start_hour - 1) % 24 and ts.minute >= 60 - window.grace_minutes


def in_window(ts: datetime, window: WindowDefinition) -> bool:
    """Whether a report timestamp falls inside the window."""
    if _in_grace(ts, window):
        return True
    if not _hour_in_range(ts.hour, window.start_hour, window.end_hour):
        return False
    if window.strict:
        return ts.minute == 0 or (
            window.grace_minutes > 0 and ts.minute >= 60 - window.grace_minutes
        )
    return True


def is_hourly(ts: datetime) -> bool:
    """Routine reports are stamped in the last several minutes of the hour."""
    return HOURLY_MINUTE_MIN <= ts.minute <= HOURLY_MINUTE_MAX


def is_synoptic(ts: datetime, hours: Iterable[int] = SYNOPTIC_ISSUE_HOURS) -> bool:
    """6-hourly synoptic report: a routine report issued in one of `hours`."""
    return is_hourly(ts) and ts.hour in set(hours)


def window_bounds(now: datetime, window: WindowDefinition) -> tuple[datetime, datetime]:
    """Start (grace included) and end of the most recent window that has begun.

    A window in progress counts as the most recent one.
    """
    start = now.replace(hour=window.start_hour, minute=0, second=0, microsecond=0)
    start -= timedelta(minutes=window.grace_minutes)
    if start > now:
        start -= timedelta(days=1)
    end = (
        start
        + timedelta(minutes=window.grace_minutes)
        + timedelta(hours=window.span_hours)
    )
    return start, end


def annotate(
    reports: Sequence[RawReport],
    window: WindowDefinition,
) -> list[WindowedObservation]:
    return [
        WindowedObservation(
            report=r,
            in_window=in_window(r.timestamp, window),
            is_hourly=is_hourly(r.timestamp),
        )
        for r in reports
    ]


def select_window(
    reports: Sequence[RawReport],
    window: WindowDefinition,
    hourly_only: bool = False,
    now: Optional[datetime] = None,
) -> list[RawReport]:
    """Filter reports to those inside the window, preserving input order.

    Args:
        reports: Reports for one station, any order (the API returns newest first).
        window: Window definition.
        hourly_only: Keep only routine hourly reports.
        now: If given, keep only the most recent occurrence of the window, so
            that a 24+ hour fetch does not mix two evenings.

    Returns:
        The filtered subsequence.
    """
    bounds = window_bounds(now, window) if now is not None else None
    selected: list[RawReport] = []
    for obs in annotate(reports, window):
        if not obs.in_window:
            continue
        if hourly_only and not obs.is_hourly:
            continue
        if bounds is not None and not (bounds[0] <= obs.report.timestamp < bounds[1]):
            continue
        selected.append(obs.report)
    return selected


def latest_timestamp(reports: Iterable[RawReport]) -> Optional[datetime]:
    """Newest timestamp by instant comparison, not list position."""
    latest: Optional[datetime] = None
    for r in reports:
        if latest is None or r.timestamp > latest:
            latest = r.timestamp
    return latest


def window_label(now: datetime, window: WindowDefinition) -> str:
    """Label for the most recent window, e.g. "1820Z-1900Z"."""
    start, end = window_bounds(now, window)
    start += timedelta(minutes=window.grace_minutes)
    return f"{start:%d%H}Z-{end:%d%H}Z"


def format_timestamp(ts: datetime) -> str:
    """HHMMZ, e.g. "2356Z"."""
    return f"{ts:%H%M}Z"


def format_pressure_timestamp(ts: datetime) -> str:
    """DD/MM HHMMZ, e.g. "18/06 1756Z"."""
    return f"{ts:%d/%m %H%M}Z"
