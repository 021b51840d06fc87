# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Recipe run orchestration
# PURPOSE: Validate and execute recipe DAGs
# CREATED: 10 OCT 2026
# ============================================================================
"""
Orchestrator Module

The recipe orchestrator and its engine components.

Usage:
    from orchestrator.recipe_orchestrator import RecipeOrchestrator

    orchestrator = RecipeOrchestrator(store)
    execution = await orchestrator.execute_recipe("persona_generation", {"count": 3})

The engine package (validator, input resolution, prompt rendering) has no
dependency on handlers; this module exports only the engine so the
handlers can import it.
"""

from orchestrator.engine import (
    DAGValidator,
    PromptRenderer,
    get_validator,
    resolve_inputs,
)

__all__ = [
    "DAGValidator",
    "PromptRenderer",
    "get_validator",
    "resolve_inputs",
]
