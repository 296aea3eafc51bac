"""Canned station observations for the refresh and API tests."""

import asyncio
from datetime import datetime, timezone

import pytest

from stratus.services.reports import RawReport

NOW = datetime(2024, 6, 19, 3, 0, tzinfo=timezone.utc)


def _ts(day: int, hour: int, minute: int = 56) -> datetime:
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


def _metar(station: str, ts: datetime, remarks: str) -> RawReport:
    return RawReport(
        station_id=station,
        timestamp=ts,
        raw_text=f"METAR {station} {ts:%d%H%M}Z 29012KT 10SM RMK AO2 {remarks}",
    )


def evening_observations() -> dict[str, list[RawReport]]:
    """One evening and the following night at the gradient stations.

    KSFO evening max 23.9/14.4C (75/58F). Gradients at 03Z: offshore -5.5 mb,
    onshore +6.9 mb; 24h earlier -3.0 and +5.5 mb.
    """
    return {
        "KSFO": [
            _metar("KSFO", _ts(19, 2), "SLP189 T01500111"),
            _metar("KSFO", _ts(18, 23), "SLP176 T02110133"),
            _metar("KSFO", _ts(18, 21), "SLP170 T02390144"),
            _metar("KSFO", _ts(18, 2), "SLP180 T01390106"),
        ],
        "KACV": [
            _metar("KACV", _ts(19, 2), "SLP134"),
            _metar("KACV", _ts(18, 2), "SLP150"),
        ],
        "KSMF": [
            _metar("KSMF", _ts(19, 2), "SLP120"),
            _metar("KSMF", _ts(18, 2), "SLP125"),
        ],
        "KOAK": [_metar("KOAK", _ts(19, 2), "SLP160")],
        "KSJC": [_metar("KSJC", _ts(19, 2), "SLP142")],
    }


class FakeFetcher:
    """Station fetcher serving canned reports and recording calls."""

    def __init__(self, data=None, failures=()):
        self.data = evening_observations() if data is None else data
        self.failures = set(failures)
        self.calls: list[str] = []

    async def __call__(self, station_id: str) -> list[RawReport]:
        self.calls.append(station_id)
        await asyncio.sleep(0)
        if station_id in self.failures:
            raise ConnectionError(f"{station_id} unreachable")
        return list(self.data.get(station_id, []))


@pytest.fixture
def fake_fetch():
    return FakeFetcher()
