from __future__ import annotations

from datetime import timezone as dt_timezone
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = structlog.get_logger(__name__)

DEFAULT_TIMEZONE = "Asia/Hong_Kong"


class BotSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("DISCORD_BOT_TOKEN", "DISCORD_TOKEN"),
    )
    # Raw string from environment; parsed via property for flexibility
    guild_allowlist_raw: str = Field(default="", alias="DISCORD_GUILD_ALLOWLIST")
    timezone_name: str = Field(default=DEFAULT_TIMEZONE, alias="LEDGER_TIMEZONE")

    @property
    def guild_allowlist(self) -> list[int]:
        s = str(self.guild_allowlist_raw).strip()
        if s.startswith("[") and s.endswith("]"):
            s = s[1:-1]
        return [int(p.strip()) for p in s.split(",") if p.strip()]

    @property
    def timezone(self) -> tzinfo:
        """Display timezone for entry timestamps; UTC when the name is unknown."""
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            LOGGER.warning("config.timezone.fallback_utc", timezone=self.timezone_name)
            return dt_timezone.utc
