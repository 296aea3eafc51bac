"""Tests for the refresh cycle."""

import asyncio
from datetime import datetime, timezone

from conftest import NOW, FakeFetcher
from stratus.services.refresh import StratusRefresher


class TestRefreshCycle:
    def test_full_cycle(self, fake_fetch):
        refresher = StratusRefresher(fetch=fake_fetch)
        result = asyncio.run(refresher.refresh(now=NOW))

        assert result.sequence == 1
        assert result.errors == []
        assert result.temperature.max_temp_f == 75
        assert result.temperature.max_dewpoint_f == 58
        assert result.temperature.timestamp == datetime(2024, 6, 18, 23, 56, tzinfo=timezone.utc)

        g = result.gradient
        assert g.offshore_gradient_mb == -5.5
        assert g.onshore_gradient_mb == 6.9
        assert g.offshore_24h_trend_mb == -2.5
        assert g.onshore_24h_trend_mb == 1.4
        assert result.regional_gradient_mb_per_deg == 5.0
        assert refresher.latest is result

    def test_station_fetched_once_per_cycle(self, fake_fetch):
        refresher = StratusRefresher(fetch=fake_fetch)
        asyncio.run(refresher.refresh(now=NOW))
        assert fake_fetch.calls.count("KSFO") == 1

    def test_inland_failure_is_partial(self):
        fetch = FakeFetcher(failures={"KSMF"})
        refresher = StratusRefresher(fetch=fetch, regional_stations=[])
        result = asyncio.run(refresher.refresh(now=NOW))

        assert result.temperature.max_temp_f == 75
        assert result.gradient.offshore_gradient_mb == -5.5
        assert result.gradient.onshore_gradient_mb is None
        assert result.gradient.missing_stations == ["KSMF"]
        assert result.errors == ["Observation fetch for KSMF failed"]

    def test_temperature_station_failure(self):
        fetch = FakeFetcher(failures={"KSFO"})
        refresher = StratusRefresher(fetch=fetch, regional_stations=[])
        result = asyncio.run(refresher.refresh(now=NOW))

        assert result.temperature is None
        assert result.gradient.offshore_gradient_mb is None
        assert result.gradient.onshore_gradient_mb is None
        assert len(result.errors) == 2
        assert any("KSFO" in e for e in result.errors)

    def test_everything_down(self):
        fetch = FakeFetcher(failures={"KSFO", "KACV", "KSMF", "KOAK", "KSJC", "KHWD", "KPAO"})
        refresher = StratusRefresher(fetch=fetch)
        result = asyncio.run(refresher.refresh(now=NOW))

        assert result.temperature is None
        assert result.gradient is None
        assert result.regional_gradient_mb_per_deg is None
        assert len(result.errors) == 3
        assert refresher.latest is result

    def test_regional_failure_recorded(self):
        regional = ["KOAK", "KSJC"]
        fetch = FakeFetcher(failures=set(regional))
        refresher = StratusRefresher(fetch=fetch, regional_stations=regional)
        result = asyncio.run(refresher.refresh(now=NOW))

        assert result.temperature.max_temp_f == 75
        assert result.gradient.offshore_gradient_mb == -5.5
        assert result.regional_gradient_mb_per_deg is None
        assert len(result.errors) == 1
        assert "KOAK" in result.errors[0] and "KSJC" in result.errors[0]


class TestLastWriteWins:
    def test_sequence_increments(self, fake_fetch):
        refresher = StratusRefresher(fetch=fake_fetch, regional_stations=[])

        async def scenario():
            first = await refresher.refresh(now=NOW)
            second = await refresher.refresh(now=NOW)
            return first, second

        first, second = asyncio.run(scenario())
        assert (first.sequence, second.sequence) == (1, 2)
        assert refresher.latest is second

    def test_slow_older_cycle_is_discarded(self):
        """An older cycle finishing after a newer one must not overwrite it."""
        data = FakeFetcher().data

        async def scenario():
            gate = asyncio.Event()
            hold = [True]

            async def fetch(station_id: str):
                if hold[0]:
                    await gate.wait()
                return list(data.get(station_id, []))

            refresher = StratusRefresher(fetch=fetch, regional_stations=[])
            slow = asyncio.ensure_future(refresher.refresh(now=NOW))
            for _ in range(20):
                await asyncio.sleep(0)

            hold[0] = False
            fast = await refresher.refresh(now=NOW)
            gate.set()
            stale = await slow
            return refresher, stale, fast

        refresher, stale, fast = asyncio.run(scenario())
        assert stale.sequence == 1
        assert fast.sequence == 2
        assert refresher.latest is fast
        assert refresher.stats["discarded_stale"] == 1
        assert refresher.stats["last_sequence"] == 2
