"""Slash commands over the per-channel ledger: /add, /list, /balance, /reset."""

from __future__ import annotations

from datetime import timezone, tzinfo
from typing import Any, Optional, Sequence

import discord
import structlog
from discord import app_commands

from beanbot.bot.services.ledger_store import ZERO_BALANCE, LedgerStore
from beanbot.bot.ui.ledger_views import (
    STORAGE_UNAVAILABLE_MESSAGE,
    AmountModal,
    ReversalView,
)
from beanbot.models.ledger_errors import InvalidAmountError
from beanbot.models.ledger_models import MAX_HISTORY_ENTRIES, LedgerEntry, parse_amount

LOGGER = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"
NOT_IN_CHANNEL_MESSAGE = "This command only works inside a channel."
INVALID_AMOUNT_MESSAGE = "Don't understand that amount, please try again."


def register(
    tree: app_commands.CommandTree,
    store: LedgerStore,
    *,
    tz: tzinfo = timezone.utc,
) -> None:
    """Register the ledger commands, all bound to the given store."""
    tree.add_command(build_add_command(store))
    tree.add_command(build_list_command(store, tz=tz))
    tree.add_command(build_balance_command(store))
    tree.add_command(build_reset_command(store))
    LOGGER.debug("bot.command.ledger.registered")


def build_add_command(store: LedgerStore) -> app_commands.Command[Any, Any, Any]:
    @app_commands.command(name="add", description="Record a signed amount in this channel's ledger.")
    @app_commands.describe(amount="Signed amount, e.g. 12.50 or -3.25. Leave empty to be asked.")
    async def add(interaction: discord.Interaction, amount: Optional[str] = None) -> None:
        chat_id = interaction.channel_id
        if chat_id is None:
            await _respond(interaction, NOT_IN_CHANNEL_MESSAGE, ephemeral=True)
            return

        if amount is None or not amount.strip():

            async def _on_submit(modal_interaction: discord.Interaction, text: str) -> None:
                await _apply_and_reply(store, modal_interaction, chat_id, text)

            await interaction.response.send_modal(AmountModal(on_submit=_on_submit))
            return

        await _apply_and_reply(store, interaction, chat_id, amount)

    return add


def build_list_command(
    store: LedgerStore, *, tz: tzinfo = timezone.utc
) -> app_commands.Command[Any, Any, Any]:
    @app_commands.command(name="list", description="Show recent ledger entries with undo buttons.")
    @app_commands.describe(count=f"How many entries to show (1-{MAX_HISTORY_ENTRIES}, default all).")
    async def list_entries(
        interaction: discord.Interaction,
        count: Optional[app_commands.Range[int, 1, MAX_HISTORY_ENTRIES]] = None,
    ) -> None:
        chat_id = interaction.channel_id
        if chat_id is None:
            await _respond(interaction, NOT_IN_CHANNEL_MESSAGE, ephemeral=True)
            return

        wanted = count or MAX_HISTORY_ENTRIES
        result = await store.get_history(chat_id, wanted)
        if result.is_err():
            await _respond(interaction, STORAGE_UNAVAILABLE_MESSAGE, ephemeral=True)
            return

        entries = result.unwrap()[-wanted:]
        if not entries:
            await _respond(interaction, "No entries recorded yet.")
            return

        view = ReversalView(store=store, chat_id=chat_id, entries=entries)
        await _respond(interaction, format_history(entries, tz), view=view)
        try:
            view.bind_message(await interaction.original_response())
        except discord.HTTPException as exc:
            LOGGER.debug("bot.ledger.bind_message_failed", error=str(exc))

    return list_entries


def build_balance_command(store: LedgerStore) -> app_commands.Command[Any, Any, Any]:
    @app_commands.command(name="balance", description="Show this channel's current balance.")
    async def balance(interaction: discord.Interaction) -> None:
        chat_id = interaction.channel_id
        if chat_id is None:
            await _respond(interaction, NOT_IN_CHANNEL_MESSAGE, ephemeral=True)
            return

        result = await store.get_balance(chat_id)
        if result.is_err():
            await _respond(interaction, STORAGE_UNAVAILABLE_MESSAGE, ephemeral=True)
            return
        await _respond(interaction, f"Current balance: {result.unwrap()}")

    return balance


def build_reset_command(store: LedgerStore) -> app_commands.Command[Any, Any, Any]:
    @app_commands.command(name="reset", description="Reset the balance and clear the history.")
    @app_commands.describe(amount="New balance; anything that is not a number resets to 0.")
    async def reset(interaction: discord.Interaction, amount: Optional[str] = None) -> None:
        chat_id = interaction.channel_id
        if chat_id is None:
            await _respond(interaction, NOT_IN_CHANNEL_MESSAGE, ephemeral=True)
            return

        new_balance = ZERO_BALANCE
        if amount:
            try:
                new_balance = str(parse_amount(amount))
            except InvalidAmountError:
                new_balance = ZERO_BALANCE

        result = await store.reset_balance(chat_id, new_balance)
        if result.is_err():
            await _respond(interaction, STORAGE_UNAVAILABLE_MESSAGE, ephemeral=True)
            return
        await _respond(interaction, "Balance reset")

    return reset


async def _apply_and_reply(
    store: LedgerStore,
    interaction: discord.Interaction,
    chat_id: int,
    raw_amount: str,
) -> None:
    try:
        amount = parse_amount(raw_amount)
    except InvalidAmountError:
        await _respond(interaction, INVALID_AMOUNT_MESSAGE, ephemeral=True)
        return

    result = await store.apply_delta(chat_id, amount)
    if result.is_err():
        await _respond(interaction, STORAGE_UNAVAILABLE_MESSAGE, ephemeral=True)
        return
    await _respond(interaction, f"Balance updated. New balance {result.unwrap()}")


def format_entry(entry: LedgerEntry, tz: tzinfo) -> str:
    return f"{entry.amount} @ {entry.recorded_at.astimezone(tz).strftime(TIMESTAMP_FORMAT)}"


def format_history(entries: Sequence[LedgerEntry], tz: tzinfo) -> str:
    """Numbered lines matching the ⏪ button labels of ``ReversalView``."""
    return "\n".join(
        f"{index}. {format_entry(entry, tz)}" for index, entry in enumerate(entries, start=1)
    )


async def _respond(
    interaction: discord.Interaction,
    content: str,
    *,
    ephemeral: bool = False,
    view: discord.ui.View | None = None,
) -> None:
    """Reply to the interaction, falling back to a followup once already answered."""
    kwargs: dict[str, Any] = {"content": content, "ephemeral": ephemeral}
    if view is not None:
        kwargs["view"] = view
    try:
        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)
    except discord.HTTPException:
        LOGGER.exception("bot.respond_failed")


__all__ = [
    "build_add_command",
    "build_balance_command",
    "build_list_command",
    "build_reset_command",
    "format_entry",
    "format_history",
    "register",
]
