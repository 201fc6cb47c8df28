# app/config.py
from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Absolute path to the project .env (app/config.py → parent of app/)
ENV_FILE = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_FILE, override=False)  # pre-load into the process environment


class Settings(BaseSettings):
    # ---- Feed ----
    FEED_URL: str = "https://news.ycombinator.com/newest"
    TARGET_COUNT: int = Field(default=100, ge=1)
    MAX_PAGES: int = Field(default=10, ge=1)  # safety guard so we don't paginate forever

    # ---- Browser timeouts (milliseconds, Playwright units) ----
    PAGE_LOAD_TIMEOUT_MS: int = 60_000
    SELECTOR_TIMEOUT_MS: int = 45_000

    # ---- Retry / pacing (seconds) ----
    START_RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    START_RETRY_DELAY_S: float = 2.0
    NAV_RETRY_ATTEMPTS: int = Field(default=2, ge=1)
    NAV_RETRY_DELAY_S: float = 2.0
    NAV_SETTLE_DELAY_S: float = 0.5
    START_SETTLE_DELAY_S: float = 1.0

    HEADLESS: bool = True

    # ---- Output ----
    REPORT_PATH: str = "hn_newest_report.json"
    FAILURE_SCREENSHOT_PATH: str = "hn_validation_failure.png"
    ERROR_SCREENSHOT_PATH: str = "hn_runtime_error.png"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # ignore unrelated .env keys
    )


settings = Settings()
