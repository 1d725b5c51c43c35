"""Tests for the selfie scene catalog."""

import json
import random
from pathlib import Path

import pytest

from galbot.exceptions import ConfigurationException
from galbot.services.scene_service import Scene, SceneCatalog

BUNDLED_SCENES = Path(__file__).resolve().parent.parent / "data" / "scenes.json"


class TestSceneCatalog:
    """Tests for SceneCatalog loading and selection."""

    def test_bundled_catalog_loads(self):
        catalog = SceneCatalog.from_json(BUNDLED_SCENES)
        assert len(catalog) > 0
        assert all(scene.description for scene in catalog.scenes)

    def test_from_json(self, tmp_path):
        path = tmp_path / "scenes.json"
        path.write_text(
            json.dumps(
                {
                    "photoOps": [
                        {"name": "beach", "description": "A selfie at the beach"},
                        {"description": "  A selfie in the rain  "},
                        {"name": "blank", "description": ""},
                    ]
                }
            ),
            encoding="utf-8",
        )

        catalog = SceneCatalog.from_json(path)

        assert catalog.scenes == (
            Scene("beach", "A selfie at the beach"),
            Scene("scene-2", "A selfie in the rain"),
        )

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            SceneCatalog.from_json(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "scenes.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationException):
            SceneCatalog.from_json(path)

    def test_no_usable_scenes(self, tmp_path):
        path = tmp_path / "scenes.json"
        path.write_text(json.dumps({"photoOps": []}), encoding="utf-8")
        with pytest.raises(ConfigurationException):
            SceneCatalog.from_json(path)

    def test_random_scene_is_from_catalog(self):
        scenes = (Scene("a", "first"), Scene("b", "second"), Scene("c", "third"))
        catalog = SceneCatalog(scenes)
        rng = random.Random(7)
        for _ in range(10):
            assert catalog.random_scene(rng) in scenes
