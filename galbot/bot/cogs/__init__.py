"""Discord cogs for GalBot."""

from .commands import GalCommandsCog

__all__ = ["GalCommandsCog"]
