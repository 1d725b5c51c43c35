"""Database module for GalBot."""

from .models import Base, UserCredits

__all__ = [
    'Base',
    'UserCredits',
]
