"""Discord-facing layer for GalBot: routing, replies and the image queue."""
