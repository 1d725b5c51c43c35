"""Exactly-once reply capability for command events.

Handlers and queue workers never touch a raw ``discord.Interaction``;
they get a ReplySink that acknowledges at most once and replies at most
once.
"""

import logging
from abc import ABC, abstractmethod

import discord

logger = logging.getLogger(__name__)


class ReplySink(ABC):
    """Delivers the single reply for one command invocation."""

    def __init__(self) -> None:
        self._acknowledged = False
        self._replied = False

    @property
    def acknowledged(self) -> bool:
        return self._acknowledged

    @property
    def replied(self) -> bool:
        return self._replied

    async def acknowledge(self) -> None:
        """Tell the platform a reply is coming later."""
        if self._acknowledged or self._replied:
            return
        await self._acknowledge()
        self._acknowledged = True

    async def send(self, content: str, *, ephemeral: bool = False) -> bool:
        """Send the reply. Returns False if a reply was already sent."""
        if self._replied:
            logger.warning("Dropping second reply for the same command: %.80s", content)
            return False
        # Claimed before awaiting so overlapping sends cannot both go out.
        self._replied = True
        try:
            await self._send(content, ephemeral=ephemeral)
        except BaseException:
            self._replied = False
            raise
        return True

    @abstractmethod
    async def _acknowledge(self) -> None:
        pass

    @abstractmethod
    async def _send(self, content: str, *, ephemeral: bool) -> None:
        pass


class InteractionReplySink(ReplySink):
    """ReplySink backed by a Discord slash-command interaction."""

    def __init__(self, interaction: discord.Interaction) -> None:
        super().__init__()
        self.interaction = interaction

    async def _acknowledge(self) -> None:
        if not self.interaction.response.is_done():
            await self.interaction.response.defer(thinking=True)

    async def _send(self, content: str, *, ephemeral: bool) -> None:
        if self.interaction.response.is_done():
            # Deferred: the first followup replaces the "thinking" placeholder.
            await self.interaction.followup.send(content, ephemeral=ephemeral)
            return
        await self.interaction.response.send_message(content, ephemeral=ephemeral)
