from __future__ import annotations

import asyncio
from typing import Sequence

import discord
import structlog
from discord import app_commands
from dotenv import load_dotenv

from beanbot.bot.commands import ledger as ledger_commands
from beanbot.bot.services.ledger_store import LedgerStore
from beanbot.config.settings import BotSettings
from beanbot.db import pool as db_pool
from beanbot.infra.logging.config import configure_logging

# Configure logging as soon as this module is imported
configure_logging()
LOGGER = structlog.get_logger(__name__)


class LedgerBot(discord.Client):
    """Discord client that owns the pool and the ledger store for its lifetime."""

    def __init__(self, settings: BotSettings) -> None:
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(intents=intents)
        self.settings = settings
        self.tree = app_commands.CommandTree(self)
        self.store: LedgerStore | None = None

    async def setup_hook(self) -> None:
        """Open the pool, build the store and publish the slash commands."""
        pool = await db_pool.init_pool()
        self.store = LedgerStore(pool)

        ledger_commands.register(self.tree, self.store, tz=self.settings.timezone)
        LOGGER.info("bot.commands.loaded", count=len(self.tree.get_commands()))

        if self.settings.guild_allowlist:
            await self._sync_guild_commands(self.settings.guild_allowlist)
            # Guild copies replace the global set, otherwise allowlisted guilds
            # list every command twice.
            await self._clear_global_commands()
        else:
            await self.tree.sync()

        LOGGER.info(
            "bot.setup.complete",
            guild_allowlist=list(self.settings.guild_allowlist),
            timezone=self.settings.timezone_name,
        )

    async def close(self) -> None:
        try:
            await db_pool.close_pool()
        finally:
            await super().close()

    async def on_ready(self) -> None:
        user = str(self.user) if getattr(self, "user", None) else None
        LOGGER.info("bot.ready", user=user)

    async def _sync_guild_commands(self, guild_ids: Sequence[int]) -> None:
        """Copy global commands into each allowlisted guild so they appear at once."""
        for guild_id in guild_ids:
            guild = discord.Object(id=guild_id)
            try:
                self.tree.clear_commands(guild=guild)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                LOGGER.info("bot.commands.synced_guild", guild_id=guild_id)
            except discord.HTTPException as exc:
                LOGGER.exception("bot.commands.sync_error", guild_id=guild_id, error=str(exc))

    async def _clear_global_commands(self) -> None:
        try:
            self.tree.clear_commands(guild=None)
            await self.tree.sync()
            LOGGER.info("bot.commands.cleared_global")
        except discord.HTTPException as exc:
            LOGGER.exception("bot.commands.clear_global_error", error=str(exc))


def main() -> None:
    """Entry point invoked via ``python -m beanbot.bot.main`` or ``beanbot``."""
    load_dotenv(override=False)
    settings = BotSettings.model_validate({})
    bot = LedgerBot(settings)

    try:
        bot.run(settings.token, log_handler=None)
    except KeyboardInterrupt:
        LOGGER.warning("bot.run.interrupted")
    finally:
        if not bot.is_closed():
            asyncio.run(bot.close())


if __name__ == "__main__":
    main()
