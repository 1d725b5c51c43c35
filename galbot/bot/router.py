"""Command routing for GalBot.

Maps each supported slash command to a typed handler. Paid commands go
through the credit gate first; image commands are handed to the job queue
after the deduction and are not refunded if the pipeline later fails.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from galbot.bot.job_queue import ImageJob, ImageJobQueue
from galbot.bot.reply import ReplySink
from galbot.config import AppConfig
from galbot.exceptions import InvalidAmount, PermissionDenied, StoreUnavailable, UpstreamError
from galbot.services.credit_service import CreditManager
from galbot.services.generation_service import GenerationClient
from galbot.services.scene_service import SceneCatalog
from galbot.utils import (
    ERROR_EMPTY_PROMPT,
    ERROR_INSUFFICIENT_CREDITS,
    ERROR_INVALID_AMOUNT,
    ERROR_MISSING_USER,
    ERROR_PERMISSION_DENIED,
    ERROR_UNKNOWN_COMMAND,
    GENERIC_ERROR_MESSAGE,
    format_credits,
)

logger = logging.getLogger(__name__)


class CommandName(str, Enum):
    """Closed set of commands the router understands."""

    IMAGINE = "imagine"
    SELFIE = "selfie"
    ASK = "ask"
    CHECK_CREDITS = "checkcredits"
    ADD_CREDITS = "addcredits"


@dataclass
class CommandEvent:
    """Platform-neutral view of an inbound slash command."""

    command_name: str
    user_id: str
    reply: ReplySink
    options: Mapping[str, Any] = field(default_factory=dict)


Handler = Callable[[CommandEvent], Awaitable[None]]


class CommandRouter:
    """Dispatches command events to their handlers."""

    def __init__(
        self,
        config: AppConfig,
        credit_manager: CreditManager,
        generation_client: GenerationClient,
        job_queue: ImageJobQueue,
        scene_catalog: SceneCatalog,
    ) -> None:
        self.admin_user_id = str(config.admin_user_id)
        self.credit_manager = credit_manager
        self.generation_client = generation_client
        self.job_queue = job_queue
        self.scene_catalog = scene_catalog
        self._handlers: dict[CommandName, Handler] = {
            CommandName.IMAGINE: self.handle_imagine,
            CommandName.SELFIE: self.handle_selfie,
            CommandName.ASK: self.handle_ask,
            CommandName.CHECK_CREDITS: self.handle_check_credits,
            CommandName.ADD_CREDITS: self.handle_add_credits,
        }

    @property
    def command_names(self) -> list[str]:
        return [name.value for name in self._handlers]

    def is_admin(self, user_id: str) -> bool:
        return str(user_id) == self.admin_user_id

    async def dispatch(self, event: CommandEvent) -> None:
        """Run the handler for ``event`` and guarantee exactly one reply."""
        try:
            name = CommandName(event.command_name)
        except ValueError:
            logger.warning("Unknown command '%s' from user %s", event.command_name, event.user_id)
            await event.reply.send(ERROR_UNKNOWN_COMMAND, ephemeral=True)
            return

        logger.info("Received command: %s (user=%s)", name.value, event.user_id)

        try:
            await self._handlers[name](event)
        except PermissionDenied as e:
            logger.warning("Permission denied: %s", e)
            await self._reply_error(event, ERROR_PERMISSION_DENIED)
        except InvalidAmount as e:
            logger.warning("Rejected %s: %s", name.value, e)
            await self._reply_error(event, ERROR_INVALID_AMOUNT)
        except (StoreUnavailable, UpstreamError) as e:
            logger.error("Error executing command %s for user %s: %s", name.value, event.user_id, e)
            await self._reply_error(event, GENERIC_ERROR_MESSAGE)
        except Exception:
            logger.exception("Unexpected error handling command %s", name.value)
            await self._reply_error(event, GENERIC_ERROR_MESSAGE)

    async def _reply_error(self, event: CommandEvent, message: str) -> None:
        if event.reply.replied:
            return
        await event.reply.send(message, ephemeral=True)

    @staticmethod
    def _prompt_option(event: CommandEvent) -> str:
        return str(event.options.get("prompt") or "").strip()

    # --- Image commands ---

    async def _enqueue_paid_image(self, event: CommandEvent, prompt: str) -> None:
        # Check credits before deferring so the refusal can still be ephemeral.
        if not await self.credit_manager.deduct_render(event.user_id):
            await event.reply.send(ERROR_INSUFFICIENT_CREDITS, ephemeral=True)
            return
        await event.reply.acknowledge()
        self.job_queue.enqueue(
            ImageJob(prompt=prompt, reply=event.reply, requester_id=event.user_id)
        )

    async def handle_imagine(self, event: CommandEvent) -> None:
        prompt = self._prompt_option(event)
        if not prompt:
            await event.reply.send(ERROR_EMPTY_PROMPT, ephemeral=True)
            return
        await self._enqueue_paid_image(event, prompt)

    async def handle_selfie(self, event: CommandEvent) -> None:
        scene = self.scene_catalog.random_scene()
        logger.debug("Selfie scene '%s' for user %s", scene.name, event.user_id)
        await self._enqueue_paid_image(event, scene.description)

    # --- Text command ---

    async def handle_ask(self, event: CommandEvent) -> None:
        prompt = self._prompt_option(event)
        if not prompt:
            await event.reply.send(ERROR_EMPTY_PROMPT, ephemeral=True)
            return

        if not await self.credit_manager.deduct_ask(event.user_id):
            await event.reply.send(ERROR_INSUFFICIENT_CREDITS, ephemeral=True)
            return
        await event.reply.acknowledge()

        answer = await self.generation_client.generate_text(prompt)
        await event.reply.send(answer.strip() or "…")

    # --- Credit admin commands ---

    async def handle_check_credits(self, event: CommandEvent) -> None:
        target_id = event.options.get("user")
        target_id = str(target_id) if target_id else event.user_id

        if target_id != event.user_id and not self.is_admin(event.user_id):
            raise PermissionDenied(event.user_id, CommandName.CHECK_CREDITS.value)

        balance = await self.credit_manager.fetch_balance(target_id)
        if target_id == event.user_id:
            message = f"You have {format_credits(balance.credits)}."
        else:
            message = f"<@{target_id}> has {format_credits(balance.credits)}."
        await event.reply.send(message, ephemeral=True)

    async def handle_add_credits(self, event: CommandEvent) -> None:
        if not self.is_admin(event.user_id):
            raise PermissionDenied(event.user_id, CommandName.ADD_CREDITS.value)

        target_id = event.options.get("user")
        if not target_id:
            await event.reply.send(ERROR_MISSING_USER, ephemeral=True)
            return

        amount = event.options.get("credits")
        logger.info("Adding %s credits for user id: %s", amount, target_id)
        balance = await self.credit_manager.add(str(target_id), amount)
        await event.reply.send(
            f"Added {format_credits(amount)} to <@{target_id}>. "
            f"New balance: {format_credits(balance.credits)}."
        )
