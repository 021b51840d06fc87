# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Business logic layer
# PURPOSE: Recipe management and capability resolution
# CREATED: 11 OCT 2026
# ============================================================================
"""
Services Module

Business logic between the orchestrator and the store.

Usage:
    from services import CapabilityResolver, RecipeService

    recipes = RecipeService(store)
    await recipes.register(recipe_document)

    resolver = CapabilityResolver(store)
    resolution = await resolver.resolve("proj_1", "casting", "text")
"""

from .capability_resolver import CapabilityResolver
from .recipe_service import RecipeService

__all__ = [
    "CapabilityResolver",
    "RecipeService",
]
