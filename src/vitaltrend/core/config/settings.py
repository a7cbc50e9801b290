"""Application settings loaded from environment variables."""

from __future__ import annotations

from datetime import tzinfo
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """vitaltrend server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback; there is no auth layer in front of the tools.
    vt_host: str = "127.0.0.1"
    vt_port: int = 8001
    vt_log_level: str = "info"
    vt_allow_insecure_bind: bool = False

    # Record source (local cache of the remote store)
    records_cache_path: str = "~/.vitaltrend/records.json"

    # Display
    display_timezone: str = "UTC"
    default_time_range: Literal["week", "2week", "month", "quarter", "halfYear", "year", "all"] = "month"
    show_alert_lines: bool = False
    show_auxiliary_lines: bool = False
    auxiliary_line_mode: Literal["band", "line_color"] = "band"
    chart_styles_path: str = ""

    def display_tz(self) -> tzinfo:
        return ZoneInfo(self.display_timezone)


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
