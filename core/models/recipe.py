# ============================================================================
# RECIPE DEFINITION MODEL
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core model - Recipe template/blueprint
# PURPOSE: Define recipe nodes and edges loaded from YAML, JSON or the store
# CREATED: 06 OCT 2026
# EXPORTS: RecipeDefinition, NodeDefinition, EdgeDefinition, CapabilityConfig,
#          RetryPolicy
# DEPENDENCIES: pydantic
# ============================================================================
"""
Recipe Definition Models

A RecipeDefinition is the template for an execution. It defines:
- What nodes exist and which action type each runs
- Which upstream outputs feed each node (input_mapping)
- The edges that order the nodes
- Per-node error policy, retry and timeout

Documents written by the recipe editor use camelCase keys
(outputKey, inputMapping, aiModel, errorHandling.onError); both spellings
are accepted on input.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from core.contracts import ErrorPolicy, NodeType


class RetryPolicy(BaseModel):
    """Retry configuration for a node running under the retry policy."""
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        validation_alias=AliasChoices("max_attempts", "maxAttempts", "maxRetries"),
    )
    backoff: str = Field(default="exponential", pattern="^(fixed|exponential|linear)$")
    initial_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices("initial_delay_seconds", "initialDelaySeconds"),
    )
    max_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        validation_alias=AliasChoices("max_delay_seconds", "maxDelaySeconds"),
    )

    model_config = {"populate_by_name": True}

    def delay_for(self, attempt: int) -> float:
        """
        Seconds to wait after the given (1-based) failed attempt.

        fixed:       initial
        linear:      initial * attempt
        exponential: initial * 2 ** (attempt - 1)
        """
        if self.backoff == "fixed":
            delay = self.initial_delay_seconds
        elif self.backoff == "linear":
            delay = self.initial_delay_seconds * attempt
        else:
            delay = self.initial_delay_seconds * (2 ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


class CapabilityConfig(BaseModel):
    """Provider/model hint carried by a generation node."""
    provider: str = Field(
        ...,
        max_length=64,
        validation_alias=AliasChoices("provider", "adaptor", "adaptorId"),
    )
    model: str = Field(
        ...,
        max_length=128,
        validation_alias=AliasChoices("model", "modelName", "modelId"),
    )
    options: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class NodeDefinition(BaseModel):
    """
    Definition of a single action node in a recipe.

    This is the TEMPLATE - what the node does.
    ActionResult (in execution.py) is the INSTANCE - what happened in a run.
    """
    id: str = Field(..., max_length=128)
    name: str = Field(..., max_length=256)
    type: NodeType
    output_key: str = Field(
        ...,
        max_length=128,
        validation_alias=AliasChoices("output_key", "outputKey"),
    )
    input_mapping: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("input_mapping", "inputMapping"),
        description="param name -> source expression (external_input.x, outputKey, literal)",
    )
    capability_config: Optional[CapabilityConfig] = Field(
        default=None,
        validation_alias=AliasChoices("capability_config", "capabilityConfig", "aiModel"),
    )
    dependencies: Optional[List[str]] = Field(
        default=None,
        description="Declared upstream node ids (must be backed by edges)",
    )

    # Error handling
    error_policy: ErrorPolicy = Field(
        default=ErrorPolicy.FAIL,
        validation_alias=AliasChoices("error_policy", "errorPolicy", "onError"),
    )
    default_output: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("default_output", "defaultOutput"),
    )
    retry: Optional[RetryPolicy] = None
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeout_seconds", "timeoutSeconds"),
    )

    # Action parameters (prompt template, options, output format, ...)
    config: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("config", "parameters"),
    )

    description: Optional[str] = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def flatten_error_handling(cls, data: Any) -> Any:
        """Accept the nested errorHandling block of editor documents."""
        if not isinstance(data, dict):
            return data
        handling = data.get("errorHandling") or data.get("error_handling")
        if not isinstance(handling, dict):
            return data
        data = {k: v for k, v in data.items() if k not in ("errorHandling", "error_handling")}
        if "onError" in handling or "on_error" in handling:
            data.setdefault("error_policy", handling.get("onError", handling.get("on_error")))
        if "defaultOutput" in handling or "default_output" in handling:
            data.setdefault(
                "default_output",
                handling.get("defaultOutput", handling.get("default_output")),
            )
        if "retry" in handling and "retry" not in data:
            data["retry"] = handling["retry"]
        elif "maxRetries" in handling and "retry" not in data:
            data["retry"] = {"max_attempts": handling["maxRetries"]}
        return data

    @field_validator("dependencies", mode="before")
    @classmethod
    def handle_string_input(cls, v):
        """Allow single string as shorthand for single-item list."""
        if isinstance(v, str):
            return [v]
        return v


class EdgeDefinition(BaseModel):
    """Ordering edge: `source` must run before `target`."""
    source: str = Field(
        ...,
        validation_alias=AliasChoices("from", "source", "from_node"),
        serialization_alias="from",
    )
    target: str = Field(
        ...,
        validation_alias=AliasChoices("to", "target", "to_node"),
        serialization_alias="to",
    )

    model_config = {"populate_by_name": True, "frozen": True}


class RecipeDefinition(BaseModel):
    """
    Complete recipe definition.

    Graph validity (cycles, dangling edges, dependencies) is checked by
    DAGValidator, not at construction time.
    """
    recipe_id: str = Field(
        ...,
        max_length=128,
        validation_alias=AliasChoices("recipe_id", "recipeId", "id"),
    )
    name: str = Field(..., max_length=256)
    version: int = Field(default=1, ge=1)
    stage: Optional[str] = Field(
        default=None,
        max_length=128,
        validation_alias=AliasChoices("stage", "stageType", "stage_type"),
    )
    description: Optional[str] = None

    nodes: List[NodeDefinition] = Field(default_factory=list)
    edges: List[EdgeDefinition] = Field(default_factory=list)

    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True

    model_config = {"populate_by_name": True}

    def get_node(self, node_id: str) -> NodeDefinition:
        """Get a node definition by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(f"Node '{node_id}' not found in recipe '{self.recipe_id}'")

    def node_map(self) -> Dict[str, NodeDefinition]:
        return {node.id: node for node in self.nodes}


__all__ = [
    "RetryPolicy",
    "CapabilityConfig",
    "NodeDefinition",
    "EdgeDefinition",
    "RecipeDefinition",
]
