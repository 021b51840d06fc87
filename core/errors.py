# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Foundation - Exceptions raised across the engine
# PURPOSE: Distinguish structural, resolution, provider and parse failures
# CREATED: 06 OCT 2026
# ============================================================================
"""
Error Taxonomy

StructuralError   - bad recipe (missing fields, cycle, dangling edge).
                    Raised by the validator, always fatal before a run starts.
ResolutionError   - no capability/provider available for a node.
                    Fatal to the node, governed by its error policy.
ProviderError     - the external generation call failed or timed out.
                    Governed by the node's error policy.
ParseError        - provider output did not match the expected shape.
                    A ProviderError for policy purposes, logged distinctly.
InputResolutionError - a node's inputs could not be assembled.
                    Governed by the node's error policy.

Cancellation is a status, never an exception.
"""

from typing import Any, Optional


class RecipeEngineError(Exception):
    """Base exception for the recipe engine."""

    code = "RECIPE_ENGINE_ERROR"

    def __init__(self, message: str, node_id: Optional[str] = None):
        self.node_id = node_id
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Short taxonomy label recorded on action results."""
        return type(self).__name__


# ============================================================================
# STRUCTURAL
# ============================================================================

class StructuralError(RecipeEngineError):
    """Raised when a recipe graph is malformed."""
    code = "STRUCTURAL_ERROR"


class CycleDetectedError(StructuralError):
    """Raised when the edge set contains a cycle."""
    code = "CYCLE_DETECTED"

    def __init__(self, message: str = "Cycle detected in DAG. All paths must be acyclic."):
        super().__init__(message)


# ============================================================================
# RESOLUTION
# ============================================================================

class ResolutionError(RecipeEngineError):
    """Raised when a capability provider cannot be selected."""
    code = "RESOLUTION_ERROR"


class NoCapabilityConfiguredError(ResolutionError):
    """No configuration tier yields a provider for the capability."""
    code = "NO_CAPABILITY_CONFIGURED"

    def __init__(self, project_id: Optional[str], stage: Optional[str], capability: Any):
        self.project_id = project_id
        self.stage = stage
        self.capability = capability
        super().__init__(
            f"No provider configured for capability '{getattr(capability, 'value', capability)}' "
            f"(project={project_id}, stage={stage})"
        )


class ProviderNotRegisteredError(ResolutionError):
    """A resolution names a provider that is not in the registry."""
    code = "PROVIDER_NOT_REGISTERED"

    def __init__(self, provider_id: str, available: Optional[list] = None):
        self.provider_id = provider_id
        available_str = ", ".join(available or []) or "none"
        super().__init__(
            f"Provider '{provider_id}' is not registered. Available: {available_str}"
        )


# ============================================================================
# PROVIDER / PARSE
# ============================================================================

class ProviderError(RecipeEngineError):
    """Raised when an external generation call fails."""
    code = "PROVIDER_ERROR"


class ProviderTimeoutError(ProviderError):
    """A provider call exceeded the node's timeout."""
    code = "PROVIDER_TIMEOUT"


class UnsupportedCapabilityError(ProviderError):
    """A provider was asked for a capability it does not implement."""
    code = "UNSUPPORTED_CAPABILITY"

    def __init__(self, provider_id: str, operation: str):
        self.provider_id = provider_id
        self.operation = operation
        super().__init__(f"Provider '{provider_id}' does not support {operation}")


class ParseError(ProviderError):
    """Provider output could not be interpreted as the expected shape."""
    code = "PARSE_ERROR"


# ============================================================================
# INPUTS / EXECUTION
# ============================================================================

class InputResolutionError(RecipeEngineError):
    """A node's inputs or prompt could not be assembled."""
    code = "INPUT_RESOLUTION_ERROR"


class NodeExecutionError(RecipeEngineError):
    """
    Raised by the dispatcher when a node fails under the fail/retry policy.

    Carries the failed ActionResult so the orchestrator can append it.
    """
    code = "NODE_EXECUTION_ERROR"

    def __init__(self, result: Any, cause: BaseException):
        self.result = result
        self.cause = cause
        super().__init__(str(cause), node_id=getattr(result, "node_id", None))


__all__ = [
    "RecipeEngineError",
    "StructuralError",
    "CycleDetectedError",
    "ResolutionError",
    "NoCapabilityConfiguredError",
    "ProviderNotRegisteredError",
    "ProviderError",
    "ProviderTimeoutError",
    "UnsupportedCapabilityError",
    "ParseError",
    "InputResolutionError",
    "NodeExecutionError",
]
