from __future__ import annotations
from dotenv import load_dotenv, find_dotenv; load_dotenv(find_dotenv(usecwd=True), override=True)

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    TZ: str = Field(default="Europe/Helsinki", description="Zone used for the default 'today' date")

    # Polar Flow account
    POLAR_USERNAME: Optional[str] = None
    POLAR_PASSWORD: Optional[str] = None

    POLAR_FLOW_URL: str = Field(default="https://flow.polar.com")
    POLAR_AUTH_URL: str = Field(default="https://auth.polar.com/login")
    POLAR_COOKIES_FILE: str = Field(default="./cookies.json")

    # Skip the cached form POST and always drive the day page
    DISABLE_DIRECT_API: bool = Field(default=False)

    # Browser
    HEADLESS: bool = Field(default=True)
    BROWSER_LAUNCH_RETRIES: int = Field(default=3, description="Chromium launch attempts with backoff")

    # Data files
    WEIGHT_RAW_CSV: str = Field(default="weight.csv")
    WEIGHT_CLEANED_CSV: str = Field(default="weight_cleaned.csv")

    # Pacing
    REQUEST_DELAY_SECONDS: float = Field(default=1.0, description="Pause between two uploaded days")
    SETTLE_DELAY_SECONDS: float = Field(default=1.0, description="Pause after saving before re-reading the form")


def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
