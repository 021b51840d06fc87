# ============================================================================
# RECIPE SERVICE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Recipe definition management
# PURPOSE: Load, validate and publish recipe definitions
# CREATED: 11 OCT 2026
# ============================================================================
"""
Recipe Service

Loads recipe definitions from YAML or JSON files, validates their graph,
caches them, and publishes them to the recipe store where the
orchestrator reads them.

Recipe files are stored in the recipes/ directory.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from core.errors import StructuralError
from core.models import RecipeDefinition
from orchestrator.engine.validator import DAGValidator
from repositories.base import RecipeStore

logger = logging.getLogger(__name__)

RECIPE_SUFFIXES = (".yaml", ".yml", ".json")


class RecipeService:
    """Service for loading and publishing recipe definitions."""

    def __init__(
        self,
        store: Optional[RecipeStore] = None,
        recipes_dir: Optional[Union[str, Path]] = None,
        validator: Optional[DAGValidator] = None,
    ):
        """
        Initialize recipe service.

        Args:
            store: Store recipes are published to (optional for read-only use)
            recipes_dir: Directory containing recipe files.
                         Defaults to ./recipes/
            validator: DAG validator
        """
        self.store = store
        if recipes_dir:
            self.recipes_dir = Path(recipes_dir)
        else:
            self.recipes_dir = Path(__file__).parent.parent / "recipes"
        self.validator = validator or DAGValidator()

        self._cache: Dict[str, RecipeDefinition] = {}
        self._loaded = False

    def load_all(self) -> int:
        """
        Load all recipe definitions from the recipes directory.

        Files that fail to load are logged and skipped.

        Returns:
            Number of recipes loaded
        """
        if not self.recipes_dir.exists():
            logger.warning(f"Recipes directory not found: {self.recipes_dir}")
            return 0

        count = 0
        for path in sorted(self.recipes_dir.iterdir()):
            if path.suffix not in RECIPE_SUFFIXES:
                continue
            try:
                recipe = self.load_file(path)
            except (StructuralError, OSError, ValueError) as e:
                logger.error(f"Failed to load {path}: {e}")
                continue
            self._cache[recipe.recipe_id] = recipe
            count += 1
            logger.info(f"Loaded recipe: {recipe.recipe_id} v{recipe.version}")

        self._loaded = True
        logger.info(f"Loaded {count} recipes from {self.recipes_dir}")
        return count

    def load_file(self, path: Union[str, Path]) -> RecipeDefinition:
        """
        Load and validate a recipe from a YAML or JSON file.

        Raises:
            StructuralError: Recipe is malformed
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        return self.parse(data, source=str(path))

    def parse(self, data: Any, source: str = "<document>") -> RecipeDefinition:
        """
        Build a validated RecipeDefinition from a plain document.

        The graph is checked first so that structural problems surface with
        the validator's message rather than a model error.

        Raises:
            StructuralError: Recipe is malformed
        """
        if not isinstance(data, dict):
            raise StructuralError(f"Recipe in {source} must be a mapping")

        nodes = self.validator.validate(data.get("nodes") or [], data.get("edges", []))
        try:
            recipe = RecipeDefinition.model_validate({**data, "nodes": nodes})
        except ValidationError as e:
            error = e.errors()[0]
            location = ".".join(str(part) for part in error.get("loc", ()))
            raise StructuralError(f"Invalid recipe in {source}: {location}: {error.get('msg')}") from e
        return recipe

    def get(self, recipe_id: str) -> Optional[RecipeDefinition]:
        """Get a cached recipe definition by ID."""
        if not self._loaded:
            self.load_all()
        return self._cache.get(recipe_id)

    def get_or_raise(self, recipe_id: str) -> RecipeDefinition:
        """
        Raises:
            KeyError if recipe not found
        """
        recipe = self.get(recipe_id)
        if recipe is None:
            raise KeyError(f"Recipe not found: {recipe_id}")
        return recipe

    def list_all(self) -> List[RecipeDefinition]:
        if not self._loaded:
            self.load_all()
        return list(self._cache.values())

    async def register(self, recipe: Union[RecipeDefinition, Dict[str, Any]]) -> RecipeDefinition:
        """
        Validate a recipe, cache it and save it to the store.

        Args:
            recipe: RecipeDefinition or plain document

        Raises:
            StructuralError: Recipe is malformed
        """
        if isinstance(recipe, RecipeDefinition):
            self.validator.validate(recipe.nodes, recipe.edges)
        else:
            recipe = self.parse(recipe)

        self._cache[recipe.recipe_id] = recipe
        if self.store is not None:
            await self.store.save_recipe(recipe.model_dump(mode="json"))
        logger.info(f"Registered recipe: {recipe.recipe_id} v{recipe.version}")
        return recipe

    async def publish_all(self) -> int:
        """
        Save every loaded recipe to the store.

        Returns:
            Number of recipes published
        """
        if self.store is None:
            raise RuntimeError("RecipeService has no store to publish to")
        recipes = self.list_all()
        for recipe in recipes:
            await self.store.save_recipe(recipe.model_dump(mode="json"))
        logger.info(f"Published {len(recipes)} recipes")
        return len(recipes)

    def reload(self) -> int:
        """Reload all recipes from disk."""
        self._cache.clear()
        self._loaded = False
        return self.load_all()


__all__ = ["RecipeService"]
