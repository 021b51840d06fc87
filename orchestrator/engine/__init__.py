# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Engine components
# PURPOSE: DAG validation, input resolution, prompt rendering
# CREATED: 07 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- validator: DAG validation, topological order, execution levels
- inputs: input_mapping resolution
- templates: Jinja2-based prompt rendering
"""

from orchestrator.engine.validator import DAGValidator, get_validator
from orchestrator.engine.inputs import resolve_inputs, get_nested_value
from orchestrator.engine.templates import PromptRenderer

__all__ = [
    # Validator
    "DAGValidator",
    "get_validator",
    # Inputs
    "resolve_inputs",
    "get_nested_value",
    # Templates
    "PromptRenderer",
]
