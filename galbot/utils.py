"""User-facing messages and small helpers for GalBot."""

import re

GENERIC_ERROR_MESSAGE = "❌ Error processing your request."

# Error Constants
ERROR_JOB_FAILED = "❌ Error in processing your request."
ERROR_INSUFFICIENT_CREDITS = "❌ Insufficient credits."
ERROR_PERMISSION_DENIED = "❌ You do not have permission to use this command."
ERROR_INVALID_AMOUNT = "❌ Credits to add must be a positive whole number."
ERROR_EMPTY_PROMPT = "❌ Please provide a prompt."
ERROR_MISSING_USER = "❌ Please choose a user."
ERROR_UNKNOWN_COMMAND = "❌ Unknown command."

_NON_WORD_PATTERN = re.compile(r"[^\w\s-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def sanitize_file_stem(text: str, max_length: int = 100) -> str:
    """Turn free text into a storage-safe file stem.

    Characters other than word characters, whitespace and hyphens are
    dropped, then whitespace runs become single underscores.

    Args:
        text: Arbitrary text, usually a generation prompt.
        max_length: Upper bound on the returned stem length.

    Returns:
        The sanitized stem, or "image" when nothing usable remains.
    """
    stem = _NON_WORD_PATTERN.sub("", text or "")
    stem = _WHITESPACE_PATTERN.sub("_", stem.strip())
    return stem[:max_length] or "image"


def format_credits(amount: int) -> str:
    """Render a credit amount with the right plural."""
    return f"{amount} credit" if amount == 1 else f"{amount} credits"
