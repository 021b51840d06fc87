# ============================================================================
# ACTION REGISTRY
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Action handler registration and lookup
# PURPOSE: One ActionHandler implementation per node type
# CREATED: 09 OCT 2026
# ============================================================================
"""
Action Registry

Central registry of action handlers keyed by node type. The dispatcher
looks up the handler for a node's type; adding a node type means adding a
handler class, not a new branch in the dispatcher.

Design:
- Handlers are registered at import time via class decorator
- Registry is a simple dict (node_type -> handler instance)
- Fail-fast on duplicate registration
- Handlers are async and stateless; everything a run needs is in ActionContext
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Type

import httpx

from core.config import StreamingDefaults
from core.contracts import NodeType
from core.errors import RecipeEngineError, ResolutionError
from core.models import CapabilityResolution, NodeDefinition
from infrastructure.storage import BlobStore
from orchestrator.engine.templates import PromptRenderer
from providers.base import CapabilityProvider
from streaming.decoder import RecordEmission

logger = logging.getLogger(__name__)


NodeRecordCallback = Callable[[str, RecordEmission], None]


# ============================================================================
# HANDLER TYPES
# ============================================================================

@dataclass
class ActionContext:
    """
    Everything an action needs for one dispatch.

    Built by the ActionDispatcher per node.
    """
    node: NodeDefinition
    input: Dict[str, Any]
    provider: Optional[CapabilityProvider] = None
    resolution: Optional[CapabilityResolution] = None
    renderer: PromptRenderer = field(default_factory=PromptRenderer)
    streaming: StreamingDefaults = field(default_factory=StreamingDefaults)

    # Collaborators for data_processing
    blob_store: Optional[BlobStore] = None
    http_client: Optional[httpx.AsyncClient] = None

    # Streamed record callback: (node_id, emission)
    on_record: Optional[NodeRecordCallback] = None

    execution_id: Optional[str] = None
    project_id: Optional[str] = None

    # Node timeout in seconds, applied per provider call by handlers that
    # bound their own calls
    timeout: Optional[float] = None

    def require_provider(self) -> CapabilityProvider:
        if self.provider is None:
            raise ResolutionError(
                f"Node {self.node.id} ({self.node.type.value}) has no provider",
                node_id=self.node.id,
            )
        return self.provider

    def options(self) -> Dict[str, Any]:
        """
        Generation options, later sources win:
        resolved capability options, node hint options, node config options.
        """
        merged: Dict[str, Any] = {}
        if self.resolution is not None:
            merged.update(self.resolution.options)
        if self.node.capability_config is not None:
            merged.update(self.node.capability_config.options)
        merged.update(self.node.config.get("options") or {})
        return merged

    def record_callback(self) -> Optional[Callable[[RecordEmission], None]]:
        """on_record bound to this node, or None."""
        if self.on_record is None:
            return None
        return partial(self.on_record, self.node.id)


@dataclass
class ActionOutput:
    """What a handler returns: the node output plus provider metadata."""
    output: Any = None
    usage: Optional[Dict[str, Any]] = None
    records_emitted: int = 0


class ActionHandler(ABC):
    """Base class for node type handlers."""

    node_type: NodeType

    # True when run() applies ctx.timeout to each provider call itself; the
    # dispatcher then bounds only those calls, not the whole run
    times_own_calls: bool = False

    @abstractmethod
    async def run(self, ctx: ActionContext) -> ActionOutput:
        """Execute the node. Raise on failure; policy is applied by the dispatcher."""


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ActionNotRegisteredError(RecipeEngineError):
    """Raised when no handler is registered for a node type."""
    code = "ACTION_NOT_REGISTERED"

    def __init__(self, node_type: Any):
        self.node_type = node_type
        super().__init__(f"No action registered for node type: {getattr(node_type, 'value', node_type)}")


class DuplicateActionError(ValueError):
    """Raised when a node type already has a handler."""
    def __init__(self, node_type: Any):
        self.node_type = node_type
        super().__init__(f"Action already registered: {getattr(node_type, 'value', node_type)}")


# ============================================================================
# REGISTRY
# ============================================================================

# Global registry
_actions: Dict[NodeType, ActionHandler] = {}
_action_metadata: Dict[NodeType, Dict[str, Any]] = {}


def register_action(
    node_type: NodeType,
    *,
    description: str = "",
) -> Callable[[Type[ActionHandler]], Type[ActionHandler]]:
    """
    Class decorator to register the handler for a node type.

    Example:
        @register_action(NodeType.DATA_PROCESSING)
        class DataProcessingAction(ActionHandler):
            async def run(self, ctx): ...
    """
    def decorator(cls: Type[ActionHandler]) -> Type[ActionHandler]:
        if node_type in _actions:
            raise DuplicateActionError(node_type)

        cls.node_type = node_type
        _actions[node_type] = cls()
        _action_metadata[node_type] = {
            "node_type": node_type.value,
            "description": description,
            "handler": cls.__name__,
            "module": cls.__module__,
            "registered_at": datetime.utcnow().isoformat(),
        }

        logger.debug(f"Registered action: {node_type.value} ({cls.__module__}.{cls.__name__})")
        return cls

    return decorator


def get_action(node_type: NodeType) -> Optional[ActionHandler]:
    return _actions.get(node_type)


def get_action_or_raise(node_type: NodeType) -> ActionHandler:
    """
    Get the handler for a node type.

    Raises:
        ActionNotRegisteredError if none registered
    """
    handler = _actions.get(node_type)
    if handler is None:
        raise ActionNotRegisteredError(node_type)
    return handler


def list_actions() -> List[Dict[str, Any]]:
    """List all registered actions with metadata."""
    return list(_action_metadata.values())


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ActionContext",
    "ActionOutput",
    "ActionHandler",
    "NodeRecordCallback",
    "ActionNotRegisteredError",
    "DuplicateActionError",
    "register_action",
    "get_action",
    "get_action_or_raise",
    "list_actions",
]
