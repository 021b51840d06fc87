# ============================================================================
# HANDLERS MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Action handlers and dispatch
# PURPOSE: One handler per node type, dispatcher with error policy
# CREATED: 09 OCT 2026
# ============================================================================
"""
Handlers Module

Importing this package registers every built-in action:
- text_generation, image_generation, video_generation (handlers.generation)
- data_processing (handlers.data_processing)
"""

from handlers.registry import (
    ActionContext,
    ActionHandler,
    ActionNotRegisteredError,
    ActionOutput,
    DuplicateActionError,
    get_action,
    get_action_or_raise,
    list_actions,
    register_action,
)

# Import modules to register actions
from handlers import generation  # noqa: F401
from handlers import data_processing  # noqa: F401

from handlers.dispatcher import ActionDispatcher

__all__ = [
    "ActionContext",
    "ActionHandler",
    "ActionNotRegisteredError",
    "ActionOutput",
    "DuplicateActionError",
    "get_action",
    "get_action_or_raise",
    "list_actions",
    "register_action",
    "ActionDispatcher",
]
