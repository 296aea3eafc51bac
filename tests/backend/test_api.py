"""Tests for the stratus API endpoints."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, FakeFetcher
from stratus.api import stratus as stratus_api
from stratus.main import create_app
from stratus.services.refresh import StratusRefresher


@pytest.fixture
def refresher(fake_fetch):
    refresher = StratusRefresher(fetch=fake_fetch, regional_stations=[])
    asyncio.run(refresher.refresh(now=NOW))
    stratus_api.set_refresher(refresher)
    yield refresher
    stratus_api.set_refresher(None)


@pytest.fixture
def client():
    # Without the context manager the lifespan does not run, so the
    # injected refresher stays in place.
    return TestClient(create_app())


class TestObservations:
    def test_latest_observations(self, refresher, client):
        resp = client.get("/api/observations")
        assert resp.status_code == 200
        body = resp.json()
        assert body["sequence"] == 1
        assert body["temperature"]["max_temp_f"] == 75
        assert body["temperature"]["data_source"] == "NWS METAR (KSFO) 1820Z-1900Z"
        assert body["gradient"]["offshore_gradient_mb"] == -5.5
        assert body["gradient"]["onshore_trend"] == "rising"
        assert body["gradient"]["offshore_trend"] == "falling"
        assert body["temperature"]["time_z"] == "2356Z"
        assert body["temperature"]["max_temp_c"] == 23.9
        assert body["temperature"]["max_dewpoint_c"] == 14.4
        kacv = body["gradient"]["stations"]["KACV"]
        assert kacv["pressure_mb"] == 1013.4
        assert kacv["pressure_inhg"] == 29.93
        assert kacv["time_label"] == "19/06 0256Z"
        assert body["errors"] == []

    def test_manual_refresh(self, refresher, client):
        resp = client.post("/api/refresh")
        assert resp.status_code == 200
        assert resp.json()["sequence"] == 2
        assert refresher.latest.sequence == 2


class TestForecast:
    def test_observed_values_fill_in(self, refresher, client):
        resp = client.post("/api/forecast", json={"inversion_base_ft": 1500, "month": 6})
        assert resp.status_code == 200
        body = resp.json()
        assert body["stratus_index"] == 17
        assert body["base_probability_pct"] == 80.0
        assert body["quick_probability_pct"] == 59
        # Offshore -5.5 mb is well beyond the June limit; strong onshore
        # +6.9 mb rising 1.4 mb pulls onset earlier.
        assert body["probability_pct"] == pytest.approx(7.5)
        assert body["onset_window"]["most_probable"] == 7.5
        assert any("beyond the June limit" in w for w in body["warnings"])

    def test_manual_values_override(self, refresher, client):
        resp = client.post("/api/forecast", json={
            "inversion_base_ft": 1500,
            "month": 6,
            "max_temp_f": 70,
            "max_dewpoint_f": 60,
            "onshore_gradient_mb": 2.0,
            "offshore_gradient_mb": 0.0,
        })
        assert resp.status_code == 200
        assert resp.json()["stratus_index"] == 10

    def test_shallow_inversion(self, refresher, client):
        resp = client.post("/api/forecast", json={"inversion_base_ft": 400, "month": 6})
        body = resp.json()
        assert body["probability_pct"] == 5.0
        assert body["confidence"] == "High"
        assert body["onset_window"] is None

    def test_patterns_and_date(self, refresher, client):
        resp = client.post("/api/forecast", json={
            "inversion_base_ft": 1500,
            "month": 6,
            "patterns": ["thermal_low"],
            "forecast_date": "2024-06-21",
        })
        body = resp.json()
        assert len(body["pattern_effects"]) == 1
        assert body["sunrise"].startswith("2024-06-21T12:")
        assert body["burn_off_time"].startswith("2024-06-21T20:")

    def test_unknown_pattern_rejected(self, refresher, client):
        resp = client.post("/api/forecast", json={"inversion_base_ft": 1500, "patterns": ["monsoon"]})
        assert resp.status_code == 422

    def test_missing_temperature_is_422(self, client):
        down = StratusRefresher(fetch=FakeFetcher(failures={"KSFO"}), regional_stations=[])
        stratus_api.set_refresher(down)
        try:
            resp = client.post("/api/forecast", json={"inversion_base_ft": 1500})
        finally:
            stratus_api.set_refresher(None)
        assert resp.status_code == 422


class TestSunrise:
    def test_sunrise(self, client):
        resp = client.get("/api/sunrise", params={"day": "2024-06-21"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["date"] == "2024-06-21"
        assert body["sunrise_z"].startswith("12")
        assert body["sunrise_z"].endswith("Z")
