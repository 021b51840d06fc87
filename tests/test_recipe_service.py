# ============================================================================
# RECIPE SERVICE TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Recipe loading and publishing
# PURPOSE: Verify YAML/JSON loading, validation and store publishing
# CREATED: 14 OCT 2026
# ============================================================================
"""
Recipe Service Tests

Run with:
    pytest tests/test_recipe_service.py -v
"""

import asyncio
import json
from pathlib import Path

import pytest
import yaml

from core.errors import CycleDetectedError, StructuralError
from core.models import RecipeDefinition
from services import RecipeService

from conftest import make_node, make_recipe


RECIPES_DIR = Path(__file__).parent.parent / "recipes"


@pytest.fixture
def recipe_doc():
    return make_recipe(
        [make_node("a", output_key="story"), make_node("b", "data_processing", input_mapping={"s": "story"})],
        [("a", "b")],
        recipe_id="story_bundle",
        stage="drafting",
    )


class TestLoading:

    def test_bundled_recipes_load(self):
        service = RecipeService(recipes_dir=RECIPES_DIR)
        assert service.load_all() >= 1
        recipe = service.get_or_raise("persona_generation")
        assert recipe.stage == "casting"
        assert [n.id for n in recipe.nodes][0] == "write_brief"

    def test_yaml_and_json(self, tmp_path, recipe_doc):
        (tmp_path / "a.yaml").write_text(yaml.safe_dump(recipe_doc))
        json_doc = dict(recipe_doc, recipe_id="story_bundle_json")
        (tmp_path / "b.json").write_text(json.dumps(json_doc))
        (tmp_path / "notes.txt").write_text("ignored")

        service = RecipeService(recipes_dir=tmp_path)

        assert service.load_all() == 2
        assert {r.recipe_id for r in service.list_all()} == {"story_bundle", "story_bundle_json"}

    def test_bad_file_is_skipped(self, tmp_path, recipe_doc):
        (tmp_path / "good.yaml").write_text(yaml.safe_dump(recipe_doc))
        cyclic = make_recipe([make_node("a"), make_node("b")], [("a", "b"), ("b", "a")], recipe_id="loop")
        (tmp_path / "bad.yaml").write_text(yaml.safe_dump(cyclic))

        service = RecipeService(recipes_dir=tmp_path)

        assert service.load_all() == 1
        assert service.get("loop") is None

    def test_missing_directory(self, tmp_path):
        assert RecipeService(recipes_dir=tmp_path / "nope").load_all() == 0

    def test_get_or_raise(self, tmp_path):
        with pytest.raises(KeyError):
            RecipeService(recipes_dir=tmp_path).get_or_raise("nope")

    def test_reload_picks_up_new_files(self, tmp_path, recipe_doc):
        service = RecipeService(recipes_dir=tmp_path)
        assert service.load_all() == 0
        (tmp_path / "a.yml").write_text(yaml.safe_dump(recipe_doc))
        assert service.reload() == 1


class TestParse:

    def test_structural_message_wins(self):
        with pytest.raises(CycleDetectedError):
            RecipeService().parse(
                make_recipe([make_node("a"), make_node("b")], [("a", "b"), ("b", "a")])
            )

    def test_recipe_level_field_errors(self, recipe_doc):
        del recipe_doc["name"]
        with pytest.raises(StructuralError, match="name"):
            RecipeService().parse(recipe_doc)

    def test_not_a_mapping(self):
        with pytest.raises(StructuralError, match="must be a mapping"):
            RecipeService().parse(["not", "a", "recipe"])


class TestPublishing:

    def test_register_saves_to_store(self, store, recipe_doc):
        service = RecipeService(store, recipes_dir=RECIPES_DIR)
        recipe = asyncio.run(service.register(recipe_doc))

        stored = asyncio.run(store.get_recipe("story_bundle"))
        assert RecipeDefinition.model_validate(stored) == recipe
        assert service.get("story_bundle") is recipe

    def test_register_validates_definitions(self, store):
        recipe = RecipeDefinition.model_validate(
            make_recipe([make_node("a"), make_node("b", dependencies=["a"])], [])
        )
        with pytest.raises(StructuralError, match="no incoming edges"):
            asyncio.run(RecipeService(store).register(recipe))
        assert asyncio.run(store.get_recipe("test_recipe")) is None

    def test_publish_all(self, store):
        service = RecipeService(store, recipes_dir=RECIPES_DIR)
        count = asyncio.run(service.publish_all())
        assert count >= 1
        assert asyncio.run(store.get_recipe("persona_generation")) is not None

    def test_publish_requires_store(self):
        with pytest.raises(RuntimeError):
            asyncio.run(RecipeService(recipes_dir=RECIPES_DIR).publish_all())
