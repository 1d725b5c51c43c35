"""GalBot: a credit-gated Discord bot for text and image generation."""

__version__ = "1.0.0"
