"""Catalog of predefined selfie scenes.

Scenes are loaded once from a JSON file shaped like
``{"photoOps": [{"name": ..., "description": ...}, ...]}`` and never
change afterwards.
"""

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from galbot.exceptions import ConfigurationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scene:
    """A predefined image prompt."""

    name: str
    description: str


class SceneCatalog:
    """Immutable, ordered collection of scenes."""

    def __init__(self, scenes: tuple[Scene, ...]):
        if not scenes:
            raise ConfigurationException("Scene catalog is empty")
        self._scenes = tuple(scenes)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SceneCatalog":
        """Load the catalog from ``path``.

        Raises:
            ConfigurationException: If the file is missing, unreadable or
                contains no usable scenes.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationException("Failed to load scene catalog", {"path": str(path)}) from e

        entries = data.get("photoOps", []) if isinstance(data, dict) else []
        scenes = []
        for index, entry in enumerate(entries):
            description = entry.get("description") if isinstance(entry, dict) else None
            if not description or not str(description).strip():
                logger.warning("Skipping scene %d without a description in %s", index, path)
                continue
            scenes.append(
                Scene(
                    name=str(entry.get("name") or f"scene-{index + 1}"),
                    description=str(description).strip(),
                )
            )

        logger.info("Loaded %d scenes from %s", len(scenes), path)
        return cls(tuple(scenes))

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return self._scenes

    def __len__(self) -> int:
        return len(self._scenes)

    def random_scene(self, rng: Optional[random.Random] = None) -> Scene:
        return (rng or random).choice(self._scenes)
