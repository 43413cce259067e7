"""Interactive components for the ledger commands.

- ``AmountModal`` asks for an amount when ``/add`` is used without one.
- ``ReversalView`` carries one ⏪ button per listed entry; pressing it applies
  the negated amount of that entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Coroutine, Sequence

import discord
import structlog

from beanbot.models.ledger_models import LedgerEntry, negate_amount

if TYPE_CHECKING:
    from beanbot.bot.services.ledger_store import LedgerStore

LOGGER = structlog.get_logger(__name__)

# Seconds before the reversal buttons stop responding.
DEFAULT_VIEW_TIMEOUT: float = 600.0

STORAGE_UNAVAILABLE_MESSAGE = "The ledger is unavailable right now, please try again later."


def generate_custom_id(panel_type: str, component_type: str, identifier: str | None = None) -> str:
    """Build a ``{panel}:{component}:{identifier}`` custom_id.

    >>> generate_custom_id("ledger", "btn", "revert:3")
    'ledger:btn:revert:3'
    """
    if identifier:
        return f"{panel_type}:{component_type}:{identifier}"
    return f"{panel_type}:{component_type}"


class AmountModal(discord.ui.Modal):
    """Prompt for the amount of an ``/add`` issued without one."""

    amount_input: discord.ui.TextInput[Any] = discord.ui.TextInput(
        label="How much?",
        placeholder="e.g. 12.50 or -3.25",
        required=True,
        min_length=1,
        max_length=40,
    )

    def __init__(
        self,
        *,
        on_submit: Callable[[discord.Interaction, str], Coroutine[Any, Any, None]],
    ) -> None:
        super().__init__(title="Add an entry")
        self._on_submit = on_submit

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self._on_submit(interaction, str(self.amount_input.value))


class ReversalButton(discord.ui.Button["ReversalView"]):
    def __init__(self, *, index: int, entry: LedgerEntry) -> None:
        super().__init__(
            label=f"⏪ {index}",
            style=discord.ButtonStyle.secondary,
            custom_id=generate_custom_id("ledger", "btn", f"revert:{index}"),
        )
        self.entry = entry

    async def callback(self, interaction: discord.Interaction) -> None:
        view = self.view
        if view is None:  # pragma: no cover - button always lives in a view
            return
        await view.revert(interaction, self.entry)


class ReversalView(discord.ui.View):
    """One reversal button per listed history entry, in listing order."""

    def __init__(
        self,
        *,
        store: "LedgerStore",
        chat_id: int,
        entries: Sequence[LedgerEntry],
        timeout: float = DEFAULT_VIEW_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self._store = store
        self.chat_id = chat_id
        self._message: discord.Message | None = None
        for index, entry in enumerate(entries, start=1):
            self.add_item(ReversalButton(index=index, entry=entry))

    def bind_message(self, message: discord.Message) -> None:
        self._message = message

    async def revert(self, interaction: discord.Interaction, entry: LedgerEntry) -> None:
        """Cancel ``entry``'s effect on the balance by applying its negation."""
        result = await self._store.apply_delta(self.chat_id, negate_amount(entry.amount))
        if result.is_err():
            LOGGER.warning(
                "bot.ledger.revert_failed",
                chat_id=self.chat_id,
                error=str(result.unwrap_err()),
            )
            await interaction.response.send_message(STORAGE_UNAVAILABLE_MESSAGE, ephemeral=True)
            return

        LOGGER.info(
            "bot.ledger.reverted",
            chat_id=self.chat_id,
            amount=entry.amount,
            user_id=interaction.user.id,
        )
        await interaction.response.send_message(
            f"{interaction.user.mention} reverted entry.\n"
            f"Balance updated. New balance {result.unwrap()}"
        )

    async def on_timeout(self) -> None:
        for item in self.children:
            if isinstance(item, discord.ui.Button):
                item.disabled = True
        if self._message is None:
            return
        try:
            await self._message.edit(view=self)
        except discord.NotFound:
            pass
        except discord.HTTPException as exc:
            LOGGER.warning("bot.ledger.view_timeout_update_failed", error=str(exc))


__all__ = [
    "AmountModal",
    "DEFAULT_VIEW_TIMEOUT",
    "ReversalButton",
    "ReversalView",
    "STORAGE_UNAVAILABLE_MESSAGE",
    "generate_custom_id",
]
