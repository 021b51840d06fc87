# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 07 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

- recipe:     RecipeDefinition / NodeDefinition / EdgeDefinition (TEMPLATE)
- execution:  Execution / ActionResult (INSTANCE)
- capability: CapabilityResolution
"""

from core.models.recipe import (
    RecipeDefinition,
    NodeDefinition,
    EdgeDefinition,
    CapabilityConfig,
    RetryPolicy,
)
from core.models.execution import (
    Execution,
    ExecutionContext,
    ActionResult,
    RecordedActionResult,
    ActionError,
    new_execution_id,
)
from core.models.capability import CapabilityResolution

__all__ = [
    # Recipe
    "RecipeDefinition",
    "NodeDefinition",
    "EdgeDefinition",
    "CapabilityConfig",
    "RetryPolicy",
    # Execution
    "Execution",
    "ExecutionContext",
    "ActionResult",
    "RecordedActionResult",
    "ActionError",
    "new_execution_id",
    # Capability
    "CapabilityResolution",
]
