"""Tests for main.py wiring."""

import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from galbot.bot.router import CommandRouter
from galbot.exceptions import ConfigurationException
from galbot.main import build_router, create_bot, run, setup_logging
from galbot.services.scene_service import Scene, SceneCatalog


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers = handlers
        root.setLevel(level)

    def test_sets_level_and_quiets_discord(self):
        setup_logging(logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("discord").level == logging.WARNING
        assert logging.getLogger("discord.gateway").level == logging.WARNING

    @staticmethod
    def _handlers_for(path):
        return [
            h
            for h in logging.getLogger().handlers
            if getattr(h, "baseFilename", None) == os.path.abspath(path)
        ]

    def test_adds_file_handler(self, tmp_path):
        log_file = str(tmp_path / "galbot.log")
        setup_logging(logging.INFO, log_file)

        handlers = self._handlers_for(log_file)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)

    def test_other_file_handler_does_not_block_log_file(self, tmp_path):
        """A file handler for another path must not hide the configured one."""
        other = logging.FileHandler(str(tmp_path / "other.log"), encoding="utf-8")
        logging.getLogger().addHandler(other)

        log_file = str(tmp_path / "galbot.log")
        setup_logging(logging.INFO, log_file)

        assert len(self._handlers_for(log_file)) == 1

    def test_repeated_setup_does_not_duplicate_file_handler(self, tmp_path):
        log_file = str(tmp_path / "galbot.log")
        setup_logging(logging.INFO, log_file)
        setup_logging(logging.DEBUG, log_file)

        assert len(self._handlers_for(log_file)) == 1


class TestWiring:
    """Tests for building the bot and router."""

    @pytest.mark.asyncio
    async def test_build_router(self, app_config, ledger):
        catalog = SceneCatalog((Scene("beach", "A selfie at the beach"),))
        router = build_router(app_config, ledger, catalog, MagicMock(), MagicMock())

        assert isinstance(router, CommandRouter)
        assert router.credit_manager.ledger is ledger
        assert router.credit_manager.render_cost == 10
        assert router.is_admin(app_config.admin_user_id)

    def test_create_bot(self):
        bot = create_bot()
        assert bot.help_command is None


class TestRun:
    """Tests for the console entry point."""

    def test_startup_failure_exits(self, app_config):
        with patch("galbot.main.load_config", return_value=app_config), patch(
            "galbot.main.setup_logging"
        ), patch(
            "galbot.main.asyncio.run", side_effect=ConfigurationException("no scenes")
        ) as mock_run:
            with pytest.raises(SystemExit) as exc_info:
                run()

        assert exc_info.value.code == 1
        mock_run.call_args.args[0].close()

    def test_keyboard_interrupt_is_clean(self, app_config):
        with patch("galbot.main.load_config", return_value=app_config), patch(
            "galbot.main.setup_logging"
        ), patch("galbot.main.asyncio.run", side_effect=KeyboardInterrupt) as mock_run:
            run()

        mock_run.call_args.args[0].close()
