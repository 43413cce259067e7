from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from beanbot.bot import main as bot_main
from beanbot.bot.services.ledger_store import LedgerStore
from beanbot.config.settings import BotSettings
from tests.fixtures.ledger_fakes import FakeLedgerPool


def _settings(allowlist: str = "") -> BotSettings:
    return BotSettings.model_validate(
        {"DISCORD_BOT_TOKEN": "t", "DISCORD_GUILD_ALLOWLIST": allowlist, "LEDGER_TIMEZONE": "UTC"}
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_setup_hook_builds_store_and_syncs_globally(monkeypatch: pytest.MonkeyPatch) -> None:
    pool = FakeLedgerPool()
    monkeypatch.setattr(bot_main.db_pool, "init_pool", AsyncMock(return_value=pool))
    bot = bot_main.LedgerBot(_settings())
    monkeypatch.setattr(bot.tree, "sync", AsyncMock(return_value=[]))

    await bot.setup_hook()

    assert isinstance(bot.store, LedgerStore)
    assert sorted(command.name for command in bot.tree.get_commands()) == [
        "add",
        "balance",
        "list",
        "reset",
    ]
    bot.tree.sync.assert_awaited_once_with()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_setup_hook_syncs_allowlisted_guilds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(bot_main.db_pool, "init_pool", AsyncMock(return_value=FakeLedgerPool()))
    bot = bot_main.LedgerBot(_settings("111,222"))
    sync = AsyncMock(return_value=[])
    monkeypatch.setattr(bot.tree, "sync", sync)

    await bot.setup_hook()

    synced_guilds = [call.kwargs["guild"].id for call in sync.await_args_list if "guild" in call.kwargs]
    assert synced_guilds == [111, 222]
    # The final call clears the global command set.
    assert sync.await_args_list[-1].kwargs == {}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_close_releases_pool(monkeypatch: pytest.MonkeyPatch) -> None:
    close_pool = AsyncMock()
    monkeypatch.setattr(bot_main.db_pool, "close_pool", close_pool)
    bot = bot_main.LedgerBot(_settings())

    await bot.close()

    close_pool.assert_awaited_once()
