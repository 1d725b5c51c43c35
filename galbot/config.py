"""Configuration loader for GalBot."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# --- Load Environment & Default Configuration ---
# Only the project-root .env is loaded; the bot is run from the repository root.
_dotenv_path = Path(__file__).resolve().parent.parent / ".env"
if _dotenv_path.exists():
    _ = load_dotenv(_dotenv_path)

logger = logging.getLogger(__name__)


# --- Configuration Defaults ---
DEFAULT_TEXT_MODEL = "teknium/OpenHermes-2p5-Mistral-7B"
DEFAULT_TOGETHER_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_IMAGE_SIZE = "1024x1024"
DEFAULT_B2_DOWNLOAD_BASE_URL = "https://f005.backblazeb2.com"
DEFAULT_ADMIN_USER_ID = "530285329047879681"

REQUIRED_ENV_VARS = (
    "DISCORD_TOKEN",
    "TOGETHER_API_KEY",
    "OPENAI_API_KEY",
    "B2_APPLICATION_KEY_ID",
    "B2_APPLICATION_KEY",
    "B2_BUCKET_ID",
    "B2_BUCKET_NAME",
)


def _resolve_log_level(raw_level: str) -> int:
    """Return a logging level constant from a string, defaulting to INFO."""

    if not raw_level:
        return logging.INFO

    normalized = raw_level.strip().upper()

    level = getattr(logging, normalized, None)
    if isinstance(level, int) and level > 0:
        return level

    logger.warning("Unknown LOG_LEVEL '%s'; defaulting to INFO", raw_level)
    return logging.INFO


@dataclass
class AppConfig:
    """Application configuration"""

    discord_token: str
    together_api_key: str
    openai_api_key: str
    b2_application_key_id: str
    b2_application_key: str
    b2_bucket_id: str
    b2_bucket_name: str
    b2_download_base_url: str = DEFAULT_B2_DOWNLOAD_BASE_URL

    # --- Generation ---
    text_model_name: str = DEFAULT_TEXT_MODEL
    together_base_url: str = DEFAULT_TOGETHER_BASE_URL
    image_model_name: str = DEFAULT_IMAGE_MODEL
    image_size: str = DEFAULT_IMAGE_SIZE
    api_request_timeout: float = 120.0

    # --- Credits ---
    default_start_credits: int = 250
    render_cost: int = 10
    ask_cost: int = 3
    admin_user_id: str = DEFAULT_ADMIN_USER_ID
    database_path: str = "data/credits.db"

    # --- Image Queue ---
    image_queue_concurrency: int = 5
    scenes_path: str = "data/scenes.json"

    log_level: int = logging.INFO
    log_file: Optional[str] = None


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("%s is not a number; using default %s", name, default)
        return default


def _parse_int_env(name: str, default: int, minimum: Optional[int] = None) -> int:
    """Parse int from environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("%s is not an integer; using default %s", name, default)
        return default
    if minimum is not None and parsed < minimum:
        logger.warning("%s must be at least %s; using default %s", name, minimum, default)
        return default
    return parsed


def _first_nonempty_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _missing_env_vars() -> list[str]:
    return [name for name in REQUIRED_ENV_VARS if not _first_nonempty_env(name)]


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    missing = _missing_env_vars()
    if missing:
        for name in missing:
            logger.error("Missing required environment variable: %s", name)
        sys.exit(1)

    return AppConfig(
        discord_token=_first_nonempty_env("DISCORD_TOKEN"),
        together_api_key=_first_nonempty_env("TOGETHER_API_KEY"),
        openai_api_key=_first_nonempty_env("OPENAI_API_KEY"),
        b2_application_key_id=_first_nonempty_env("B2_APPLICATION_KEY_ID"),
        b2_application_key=_first_nonempty_env("B2_APPLICATION_KEY"),
        b2_bucket_id=_first_nonempty_env("B2_BUCKET_ID"),
        b2_bucket_name=_first_nonempty_env("B2_BUCKET_NAME"),
        b2_download_base_url=(
            _first_nonempty_env("B2_DOWNLOAD_BASE_URL") or DEFAULT_B2_DOWNLOAD_BASE_URL
        ).rstrip("/"),
        text_model_name=_first_nonempty_env("TEXT_MODEL_NAME") or DEFAULT_TEXT_MODEL,
        together_base_url=_first_nonempty_env("TOGETHER_BASE_URL") or DEFAULT_TOGETHER_BASE_URL,
        image_model_name=_first_nonempty_env("IMAGE_MODEL_NAME") or DEFAULT_IMAGE_MODEL,
        image_size=_first_nonempty_env("IMAGE_SIZE") or DEFAULT_IMAGE_SIZE,
        api_request_timeout=_parse_float_env("API_REQUEST_TIMEOUT", 120.0),
        default_start_credits=_parse_int_env("DEFAULT_START_CREDITS", 250, minimum=1),
        render_cost=_parse_int_env("RENDER_COST", 10, minimum=0),
        ask_cost=_parse_int_env("ASK_COST", 3, minimum=0),
        admin_user_id=_first_nonempty_env("ADMIN_USER_ID") or DEFAULT_ADMIN_USER_ID,
        database_path=_first_nonempty_env("DATABASE_PATH") or "data/credits.db",
        image_queue_concurrency=_parse_int_env("IMAGE_QUEUE_CONCURRENCY", 5, minimum=1),
        scenes_path=_first_nonempty_env("SCENES_PATH") or "data/scenes.json",
        log_level=_resolve_log_level(os.environ.get("LOG_LEVEL", "INFO")),
        log_file=_first_nonempty_env("LOG_FILE"),
    )
