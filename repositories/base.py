# ============================================================================
# RECIPE STORE INTERFACE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Repository - Store contract and shared patterns
# PURPOSE: Document store for recipes, executions and capability config
# CREATED: 08 OCT 2026
# ============================================================================
"""
Recipe Store Interface

The engine never assumes a storage technology. It needs get/set/update
semantics over plain documents keyed by string ids, with last-write-wins
updates. Documents are plain dicts (pydantic `model_dump` output).

Collections:
- recipes:               recipe_id -> recipe document
- executions:            execution_id -> execution document
- capability overrides:  (project_id, stage, capability) -> {provider, model, options}
- stage defaults:        (stage, capability) -> {provider, model, options}

update_execution patches use dotted keys to address nested fields:
    {"status": "failed", "context.error": "...", "context.failed_node_id": "n2"}
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(self, message: str, operation: str = None, entity_id: str = None):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class RecipeNotFoundError(RepositoryError):
    """Raised when a recipe id is unknown."""

    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}", operation="get_recipe", entity_id=recipe_id)


class ExecutionNotFoundError(RepositoryError):
    """Raised when an execution id is unknown."""

    def __init__(self, execution_id: str):
        super().__init__(
            f"Execution not found: {execution_id}",
            operation="get_execution",
            entity_id=execution_id,
        )


# ============================================================================
# STORE CONTRACT
# ============================================================================

class RecipeStore(ABC):
    """
    Abstract async document store.

    Provides:
    - Error context manager for consistent error handling
    - Standardized operation logging

    Subclasses implement the storage-specific operations.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.debug(f"{self.__class__.__name__} initialized")

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Wrap a store operation with standardized error handling.

        Repository errors pass through; anything else is logged and
        re-raised as RepositoryError.

        Example:
            with self._error_context("execution save", execution_id):
                self._executions[execution_id] = document
        """
        try:
            yield
        except RepositoryError:
            raise
        except Exception as e:
            error_msg = f"{operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            error_msg += f": {e}"
            self.logger.error(error_msg)
            raise RepositoryError(error_msg, operation=operation, entity_id=entity_id) from e

    def _log_operation(
        self,
        operation: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log "operation: entity_id | details" at debug level."""
        short_id = entity_id[:24] + "..." if len(entity_id) > 24 else entity_id
        msg = f"{operation}: {short_id}"
        if details:
            msg += f" | {details}"
        self.logger.debug(msg)

    # ------------------------------------------------------------------
    # RECIPES
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_recipe(self, recipe_id: str) -> Optional[Dict[str, Any]]:
        """Recipe document, or None."""

    @abstractmethod
    async def save_recipe(self, recipe: Dict[str, Any]) -> None:
        """Insert or replace a recipe document keyed by its recipe_id."""

    # ------------------------------------------------------------------
    # EXECUTIONS
    # ------------------------------------------------------------------

    @abstractmethod
    async def save_execution(self, execution: Dict[str, Any]) -> None:
        """Insert or replace an execution document keyed by its execution_id."""

    @abstractmethod
    async def update_execution(self, execution_id: str, patch: Dict[str, Any]) -> None:
        """
        Apply a partial update. Dotted keys address nested fields.

        Raises:
            ExecutionNotFoundError: execution_id unknown
        """

    @abstractmethod
    async def get_execution(self, execution_id: str) -> Optional[Dict[str, Any]]:
        """Execution document, or None."""

    @abstractmethod
    async def list_executions(
        self,
        recipe_id: Optional[str] = None,
        project_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Execution documents matching the filters, newest first."""

    # ------------------------------------------------------------------
    # CAPABILITY CONFIGURATION
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_capability_override(
        self,
        project_id: str,
        stage: str,
        capability: str,
    ) -> Optional[Dict[str, Any]]:
        """Project-level provider override, or None."""

    @abstractmethod
    async def set_capability_override(
        self,
        project_id: str,
        stage: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Set a project override; None removes it."""

    @abstractmethod
    async def get_project_default(self, project_id: str, capability: str) -> Optional[Dict[str, Any]]:
        """Project-wide provider default (any stage), or None."""

    @abstractmethod
    async def set_project_default(
        self,
        project_id: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Set a project default; None removes it."""

    @abstractmethod
    async def get_stage_default(self, stage: str, capability: str) -> Optional[Dict[str, Any]]:
        """Stage-level provider default, or None."""

    @abstractmethod
    async def set_stage_default(
        self,
        stage: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Set a stage default; None removes it."""

    # ------------------------------------------------------------------
    # PROJECT CREDENTIALS
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_project_credentials(self, project_id: str, provider_id: str) -> Optional[Dict[str, Any]]:
        """Credentials a project stores for one provider, or None."""

    @abstractmethod
    async def set_project_credentials(
        self,
        project_id: str,
        provider_id: str,
        credentials: Optional[Dict[str, Any]],
    ) -> None:
        """Set a project's credentials for a provider; None removes them."""


def apply_patch(document: Dict[str, Any], patch: Dict[str, Any]) -> None:
    """
    Apply a dotted-key patch to a document in place.

    Missing intermediate dicts are created. Last write wins.
    """
    for key, value in patch.items():
        parts = key.split(".")
        target = document
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value


__all__ = [
    "RepositoryError",
    "RecipeNotFoundError",
    "ExecutionNotFoundError",
    "RecipeStore",
    "apply_patch",
]
