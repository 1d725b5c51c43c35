"""Services module for GalBot."""

from galbot.services.archive_service import ArchivalClient
from galbot.services.credit_service import CreditManager
from galbot.services.generation_service import GenerationClient, TextModelParams
from galbot.services.ledger import CreditBalance, CreditLedger, SQLCreditLedger
from galbot.services.scene_service import Scene, SceneCatalog

__all__ = [
    # Credits
    "CreditBalance",
    "CreditLedger",
    "CreditManager",
    "SQLCreditLedger",
    # Adapters
    "ArchivalClient",
    "GenerationClient",
    "TextModelParams",
    # Scenes
    "Scene",
    "SceneCatalog",
]
