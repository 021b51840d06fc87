# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Document store access layer
# PURPOSE: Recipes, executions and capability configuration
# CREATED: 08 OCT 2026
# ============================================================================
"""
Repositories Module

Provides the store contract the engine depends on and an in-memory
implementation.

Usage:
    from repositories import InMemoryStore

    store = InMemoryStore()
    await store.save_recipe(recipe.model_dump())
"""

from .base import (
    ExecutionNotFoundError,
    RecipeNotFoundError,
    RecipeStore,
    RepositoryError,
    apply_patch,
)
from .memory import InMemoryStore

__all__ = [
    "RecipeStore",
    "InMemoryStore",
    "RepositoryError",
    "RecipeNotFoundError",
    "ExecutionNotFoundError",
    "apply_patch",
]
