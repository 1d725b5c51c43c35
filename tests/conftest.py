"""Pytest configuration and fixtures for galbot tests."""

import pytest
import pytest_asyncio

from galbot.bot.reply import ReplySink
from galbot.config import AppConfig
from galbot.services.credit_service import CreditManager
from galbot.services.ledger import SQLCreditLedger

ADMIN_ID = "530285329047879681"
USER_ID = "111111111111111111"
OTHER_USER_ID = "222222222222222222"


class RecordingReplySink(ReplySink):
    """ReplySink that records what would have been sent to Discord."""

    def __init__(self) -> None:
        super().__init__()
        self.acknowledge_calls = 0
        self.messages: list[tuple[str, bool]] = []

    async def _acknowledge(self) -> None:
        self.acknowledge_calls += 1

    async def _send(self, content: str, *, ephemeral: bool) -> None:
        self.messages.append((content, ephemeral))

    @property
    def contents(self) -> list[str]:
        return [content for content, _ in self.messages]


@pytest.fixture
def app_config():
    """AppConfig populated with test values."""
    return AppConfig(
        discord_token="test-discord-token",
        together_api_key="test-together-key",
        openai_api_key="test-openai-key",
        b2_application_key_id="test-key-id",
        b2_application_key="test-key",
        b2_bucket_id="bucket-id",
        b2_bucket_name="gal-images",
        b2_download_base_url="https://f005.backblazeb2.com",
        api_request_timeout=30.0,
        default_start_credits=250,
        render_cost=10,
        ask_cost=3,
        admin_user_id=ADMIN_ID,
        image_queue_concurrency=5,
    )


@pytest_asyncio.fixture
async def ledger():
    """Open in-memory SQLite ledger, closed after the test."""
    async with SQLCreditLedger.in_memory() as opened:
        yield opened


@pytest_asyncio.fixture
async def credit_manager(app_config, ledger):
    """CreditManager over the in-memory ledger."""
    return CreditManager(app_config, ledger)


@pytest.fixture
def reply_sink():
    return RecordingReplySink()
