from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from whiteriver import __version__


class Settings(BaseSettings):
    # ── Application ────────────────────────────────────────────────────────────
    app_name: str = "White River Dam Sync"
    app_version: str = __version__
    debug: bool = False
    log_level: str = "INFO"

    # ── Persisted output ───────────────────────────────────────────────────────
    history_dir: str = "historic_data"
    live_file: str = "live.json"

    # Optional JSON list of dam specs; None → built-in White River catalog
    dams_file: str | None = None

    # ── Fetch window / transport ───────────────────────────────────────────────
    lookback_days: int = 7
    request_timeout_seconds: float = 15.0
    request_retries: int = 2
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

    # ── Providers ──────────────────────────────────────────────────────────────
    usace_api_base: str = "https://water.usace.army.mil/cda/reporting/providers/swl/timeseries"
    usgs_iv_url: str = "https://waterservices.usgs.gov/nwis/iv/"

    # Dams share no state, so they may be fetched side by side
    process_dams_concurrently: bool = True

    @field_validator("lookback_days")
    @classmethod
    def validate_lookback_days(cls, v: int) -> int:
        if not 1 <= v <= 30:
            raise ValueError("lookback_days must be between 1 and 30")
        return v

    @field_validator("request_retries")
    @classmethod
    def validate_request_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("request_retries must not be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return level

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
