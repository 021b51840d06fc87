# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Foundation - Core enums shared by every layer
# PURPOSE: Define node types, policies and lifecycle states for recipes
# CREATED: 06 OCT 2026
# EXPORTS: NodeType, ErrorPolicy, Capability, CapabilitySource,
#          ExecutionStatus, ActionStatus
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the recipe execution engine.

These enums cross every boundary:
- Recipe documents (YAML / JSON / store)
- Execution records (store)
- Python (internal processing)
"""

from enum import Enum
from typing import Optional


# ============================================================================
# RECIPE ENUMS
# ============================================================================

class NodeType(str, Enum):
    """Closed set of action types a recipe node can declare."""
    TEXT_GENERATION = "text_generation"
    IMAGE_GENERATION = "image_generation"
    VIDEO_GENERATION = "video_generation"
    DATA_PROCESSING = "data_processing"

    def capability(self) -> Optional["Capability"]:
        """Capability a node of this type needs (None for local processing)."""
        return _NODE_CAPABILITIES.get(self)

    def requires_provider(self) -> bool:
        return self.capability() is not None


class ErrorPolicy(str, Enum):
    """
    What happens when a node's action fails.

    FAIL  - abort the run, execution becomes FAILED
    SKIP  - record a SKIPPED result carrying the node's default output
    RETRY - re-dispatch with backoff, then behave like FAIL
    """
    FAIL = "fail"
    SKIP = "skip"
    RETRY = "retry"


class Capability(str, Enum):
    """Abstract generation abilities a provider may fulfil."""
    TEXT_GENERATION = "textGeneration"
    IMAGE_GENERATION = "imageGeneration"
    VIDEO_GENERATION = "videoGeneration"


_NODE_CAPABILITIES = {
    NodeType.TEXT_GENERATION: Capability.TEXT_GENERATION,
    NodeType.IMAGE_GENERATION: Capability.IMAGE_GENERATION,
    NodeType.VIDEO_GENERATION: Capability.VIDEO_GENERATION,
}


class CapabilitySource(str, Enum):
    """Which configuration tier produced a capability resolution."""
    PROJECT_OVERRIDE = "project_override"
    PROJECT_DEFAULT = "project_default"
    STAGE_DEFAULT = "stage_default"
    NODE_HINT = "node_hint"
    GLOBAL_DEFAULT = "global_default"


# ============================================================================
# STATUS ENUMS
# ============================================================================

class ExecutionStatus(str, Enum):
    """
    Execution lifecycle states.

    State transitions:
        RUNNING -> COMPLETED
                -> FAILED
                -> CANCELLED
    """
    RUNNING = "running"          # Created at invocation start
    COMPLETED = "completed"      # Every node finished (completed or skipped)
    FAILED = "failed"            # A node failed under the fail policy
    CANCELLED = "cancelled"      # Cancelled externally

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


class ActionStatus(str, Enum):
    """
    Per-node action result states.

    PROCESSING -> COMPLETED
               -> FAILED
               -> SKIPPED (error absorbed by the skip policy)
    """
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    def is_terminal(self) -> bool:
        return self != ActionStatus.PROCESSING

    def is_successful(self) -> bool:
        """Downstream nodes may proceed after these states."""
        return self in (ActionStatus.COMPLETED, ActionStatus.SKIPPED)


__all__ = [
    "NodeType",
    "ErrorPolicy",
    "Capability",
    "CapabilitySource",
    "ExecutionStatus",
    "ActionStatus",
]
