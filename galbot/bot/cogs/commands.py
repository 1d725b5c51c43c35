"""Slash commands for GalBot."""

import logging
from typing import Any, Optional

import discord
from discord import app_commands
from discord.ext import commands

from galbot.bot.reply import InteractionReplySink
from galbot.bot.router import CommandEvent, CommandName, CommandRouter

logger = logging.getLogger(__name__)


class GalCommandsCog(commands.Cog):
    """Translates Discord interactions into router command events."""

    def __init__(self, bot: commands.Bot, router: CommandRouter):
        self.bot = bot
        self.router = router

    async def _dispatch(
        self,
        interaction: discord.Interaction,
        command_name: CommandName,
        **options: Any,
    ) -> None:
        event = CommandEvent(
            command_name=command_name.value,
            user_id=str(interaction.user.id),
            reply=InteractionReplySink(interaction),
            options=options,
        )
        await self.router.dispatch(event)

    @app_commands.command(name="imagine", description="Generate an image from a prompt.")
    @app_commands.describe(prompt="What the image should show")
    async def imagine(self, interaction: discord.Interaction, prompt: str):
        await self._dispatch(interaction, CommandName.IMAGINE, prompt=prompt)

    @app_commands.command(name="selfie", description="Ask for a selfie from GAL.")
    async def selfie(self, interaction: discord.Interaction):
        await self._dispatch(interaction, CommandName.SELFIE)

    @app_commands.command(name="ask", description="Ask GAL a question.")
    @app_commands.describe(prompt="Your question")
    async def ask(self, interaction: discord.Interaction, prompt: str):
        await self._dispatch(interaction, CommandName.ASK, prompt=prompt)

    @app_commands.command(name="checkcredits", description="Check your credit balance.")
    @app_commands.describe(user="Whose balance to check (admin only)")
    async def checkcredits(
        self, interaction: discord.Interaction, user: Optional[discord.User] = None
    ):
        await self._dispatch(
            interaction,
            CommandName.CHECK_CREDITS,
            user=str(user.id) if user else None,
        )

    @app_commands.command(name="addcredits", description="Add credits to a user.")
    @app_commands.describe(user="The user to give credits", credits="The number of credits to add")
    async def addcredits(
        self, interaction: discord.Interaction, user: discord.User, credits: int
    ):
        await self._dispatch(
            interaction,
            CommandName.ADD_CREDITS,
            user=str(user.id),
            credits=credits,
        )
