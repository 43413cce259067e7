from __future__ import annotations

from datetime import timezone
from pathlib import Path

import pytest
from zoneinfo import ZoneInfo

from beanbot.config.settings import BotSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep a developer's .env from leaking into these tests.
    monkeypatch.chdir(tmp_path)
    for name in ("DISCORD_BOT_TOKEN", "DISCORD_TOKEN", "DISCORD_GUILD_ALLOWLIST", "LEDGER_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_token_accepts_either_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    assert BotSettings.model_validate({}).token == "abc"

    monkeypatch.setenv("DISCORD_BOT_TOKEN", "preferred")
    assert BotSettings.model_validate({}).token == "preferred"


@pytest.mark.unit
def test_missing_token_is_rejected() -> None:
    with pytest.raises(ValueError):
        BotSettings.model_validate({})


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", []), ("123", [123]), ("1,2, 3", [1, 2, 3]), ("[10, 20]", [10, 20])],
)
def test_guild_allowlist_parsing(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: list[int]
) -> None:
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "t")
    monkeypatch.setenv("DISCORD_GUILD_ALLOWLIST", raw)

    assert BotSettings.model_validate({}).guild_allowlist == expected


@pytest.mark.unit
def test_timezone_defaults_to_hong_kong(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "t")

    settings = BotSettings.model_validate({})

    assert settings.timezone == ZoneInfo("Asia/Hong_Kong")


@pytest.mark.unit
def test_unknown_timezone_falls_back_to_utc(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "t")
    monkeypatch.setenv("LEDGER_TIMEZONE", "Mars/Olympus_Mons")

    assert BotSettings.model_validate({}).timezone is timezone.utc
