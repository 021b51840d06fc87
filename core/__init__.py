# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models and errors
# CREATED: 07 OCT 2026
# ============================================================================

from core.contracts import (
    ActionStatus,
    Capability,
    CapabilitySource,
    ErrorPolicy,
    ExecutionStatus,
    NodeType,
)
from core.models import (
    ActionResult,
    CapabilityResolution,
    EdgeDefinition,
    Execution,
    NodeDefinition,
    RecipeDefinition,
)

__all__ = [
    # Enums
    "ActionStatus",
    "Capability",
    "CapabilitySource",
    "ErrorPolicy",
    "ExecutionStatus",
    "NodeType",
    # Models
    "ActionResult",
    "CapabilityResolution",
    "EdgeDefinition",
    "Execution",
    "NodeDefinition",
    "RecipeDefinition",
]
