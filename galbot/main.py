"""Main entry point for the GalBot Discord bot."""

import asyncio
import logging
import os
import sys
from typing import Optional

import discord
from discord.ext import commands

from galbot.bot.cogs import GalCommandsCog
from galbot.bot.job_queue import ImageJobQueue
from galbot.bot.router import CommandRouter
from galbot.config import AppConfig, load_config
from galbot.exceptions import ConfigurationException, StoreUnavailable
from galbot.services.archive_service import ArchivalClient
from galbot.services.credit_service import CreditManager
from galbot.services.generation_service import GenerationClient
from galbot.services.ledger import CreditLedger, SQLCreditLedger
from galbot.services.scene_service import SceneCatalog

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: int, log_file: Optional[str] = None) -> None:
    """Setup logging configuration with suppressed discord.py spam."""

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if not root_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(log_level)

    if log_file and not any(
        getattr(h, "baseFilename", None) == os.path.abspath(log_file)
        for h in root_logger.handlers
    ):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("discord.client").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)


def build_router(
    config: AppConfig,
    ledger: CreditLedger,
    scene_catalog: SceneCatalog,
    job_queue: ImageJobQueue,
    generation_client: GenerationClient,
) -> CommandRouter:
    """Wire the credit manager and adapters into a router."""
    credit_manager = CreditManager(config, ledger)
    return CommandRouter(
        config=config,
        credit_manager=credit_manager,
        generation_client=generation_client,
        job_queue=job_queue,
        scene_catalog=scene_catalog,
    )


def create_bot() -> commands.Bot:
    intents = discord.Intents.default()
    return commands.Bot(
        command_prefix=commands.when_mentioned,
        intents=intents,
        help_command=None,
    )


async def main(config: AppConfig) -> None:
    """Initializes and runs the bot."""
    scene_catalog = SceneCatalog.from_json(config.scenes_path)
    generation_client = GenerationClient(config)
    job_queue = ImageJobQueue(
        generation_client,
        ArchivalClient(config),
        concurrency=config.image_queue_concurrency,
    )

    bot = create_bot()

    async with SQLCreditLedger.from_path(config.database_path) as ledger:
        router = build_router(config, ledger, scene_catalog, job_queue, generation_client)
        await bot.add_cog(GalCommandsCog(bot, router))

        tree_synced = False

        @bot.event
        async def on_ready() -> None:
            nonlocal tree_synced
            logger.info("Logged in as %s", bot.user)
            # on_ready fires again on reconnect; sync the command tree once.
            if not tree_synced:
                try:
                    await bot.tree.sync()
                    tree_synced = True
                    logger.info("Successfully registered global application commands.")
                except discord.HTTPException:
                    logger.exception("Failed to sync command tree")

        job_queue.start()
        try:
            await bot.start(config.discord_token)
        except discord.LoginFailure:
            logger.error("Login failed. Check the DISCORD_TOKEN value.")
        finally:
            await job_queue.shutdown()
            if not bot.is_closed():
                await bot.close()


def run() -> None:
    """Console entry point."""
    config = load_config()
    setup_logging(config.log_level, config.log_file)
    try:
        asyncio.run(main(config))
    except (ConfigurationException, StoreUnavailable) as e:
        logger.error("Startup failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    run()
