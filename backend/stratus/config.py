"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/sfo-stratus/sfo-stratus.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # NWS observation API
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "SFO-Stratus-Tool/1.0 (Weather Forecasting Application)"
    http_timeout_sec: float = 15.0
    observation_limit: int = 100

    # Stratus index source (previous evening max temp/dewpoint)
    temperature_station: str = "KSFO"

    # Pressure gradient stations: offshore = upwind - bay, onshore = bay - inland
    upwind_station: str = "KACV"
    bay_station: str = "KSFO"
    inland_station: str = "KSMF"

    # Evening window for SI extrema (UTC, inclusive hours)
    window_start_hour: int = 20
    window_end_hour: int = 23
    window_grace_minutes: int = 10

    # Nearest-sample tolerance for gradient/trend pressures
    sample_tolerance_hours: float = 2.0
    gradient_hourly_only: bool = True
    # Use only the 00/06/12/18Z synoptic reports for gradients
    gradient_synoptic_only: bool = False

    # Forecast point (KSFO) for sunrise / burn-off
    latitude: float = 37.6189
    longitude: float = -122.3750

    # Refresh scheduling
    auto_refresh_enabled: bool = False
    refresh_interval_min: int = 15

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "STRATUS_", "env_file": str(_ENV_FILE)}


settings = Settings()
