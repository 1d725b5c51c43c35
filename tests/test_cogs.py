"""Tests for the slash command cog."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from galbot.bot.cogs import GalCommandsCog
from galbot.bot.reply import InteractionReplySink
from galbot.bot.router import CommandEvent


@pytest.fixture
def mock_router():
    router = MagicMock()
    router.dispatch = AsyncMock()
    return router


@pytest.fixture
def cog(mock_router):
    return GalCommandsCog(MagicMock(), mock_router)


@pytest.fixture
def mock_interaction():
    interaction = MagicMock()
    interaction.user.id = 111111111111111111
    return interaction


def _dispatched_event(mock_router) -> CommandEvent:
    mock_router.dispatch.assert_awaited_once()
    return mock_router.dispatch.call_args.args[0]


class TestGalCommandsCog:
    """Each slash command becomes one router event."""

    @pytest.mark.asyncio
    async def test_imagine(self, cog, mock_router, mock_interaction):
        await cog.imagine.callback(cog, mock_interaction, "a cat")

        event = _dispatched_event(mock_router)
        assert event.command_name == "imagine"
        assert event.user_id == "111111111111111111"
        assert event.options == {"prompt": "a cat"}
        assert isinstance(event.reply, InteractionReplySink)
        assert event.reply.interaction is mock_interaction

    @pytest.mark.asyncio
    async def test_selfie(self, cog, mock_router, mock_interaction):
        await cog.selfie.callback(cog, mock_interaction)

        event = _dispatched_event(mock_router)
        assert event.command_name == "selfie"
        assert event.options == {}

    @pytest.mark.asyncio
    async def test_ask(self, cog, mock_router, mock_interaction):
        await cog.ask.callback(cog, mock_interaction, "How are you?")

        event = _dispatched_event(mock_router)
        assert event.command_name == "ask"
        assert event.options == {"prompt": "How are you?"}

    @pytest.mark.asyncio
    async def test_checkcredits_self(self, cog, mock_router, mock_interaction):
        await cog.checkcredits.callback(cog, mock_interaction)

        event = _dispatched_event(mock_router)
        assert event.command_name == "checkcredits"
        assert event.options == {"user": None}

    @pytest.mark.asyncio
    async def test_checkcredits_other_user(self, cog, mock_router, mock_interaction):
        target = MagicMock()
        target.id = 222222222222222222

        await cog.checkcredits.callback(cog, mock_interaction, target)

        event = _dispatched_event(mock_router)
        assert event.options == {"user": "222222222222222222"}

    @pytest.mark.asyncio
    async def test_addcredits(self, cog, mock_router, mock_interaction):
        target = MagicMock()
        target.id = 222222222222222222

        await cog.addcredits.callback(cog, mock_interaction, target, 50)

        event = _dispatched_event(mock_router)
        assert event.command_name == "addcredits"
        assert event.options == {"user": "222222222222222222", "credits": 50}
