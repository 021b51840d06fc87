# ============================================================================
# IN-MEMORY RECIPE STORE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Repository - Process-local store
# PURPOSE: RecipeStore for tests and local development
# CREATED: 08 OCT 2026
# ============================================================================
"""
In-Memory Recipe Store

Dict-backed RecipeStore. Documents are deep-copied on the way in and out so
callers can never mutate stored state by accident.
"""

import copy
import itertools
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from repositories.base import ExecutionNotFoundError, RecipeStore, apply_patch


class InMemoryStore(RecipeStore):
    """Process-local document store."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._recipes: Dict[str, Dict[str, Any]] = {}
        self._executions: Dict[str, Dict[str, Any]] = {}
        self._execution_seq: Dict[str, int] = {}
        self._overrides: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self._project_defaults: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._stage_defaults: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._credentials: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._counter = itertools.count()

    # ------------------------------------------------------------------
    # RECIPES
    # ------------------------------------------------------------------

    async def get_recipe(self, recipe_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            return copy.deepcopy(recipe) if recipe is not None else None

    async def save_recipe(self, recipe: Dict[str, Any]) -> None:
        recipe_id = recipe.get("recipe_id") or recipe.get("recipeId") or recipe.get("id")
        with self._error_context("recipe save", recipe_id):
            if not recipe_id:
                raise ValueError("recipe document has no recipe_id")
            with self._lock:
                self._recipes[recipe_id] = copy.deepcopy(recipe)
        self._log_operation("Saved recipe", recipe_id)

    # ------------------------------------------------------------------
    # EXECUTIONS
    # ------------------------------------------------------------------

    async def save_execution(self, execution: Dict[str, Any]) -> None:
        execution_id = execution.get("execution_id")
        with self._error_context("execution save", execution_id):
            if not execution_id:
                raise ValueError("execution document has no execution_id")
            with self._lock:
                self._executions[execution_id] = copy.deepcopy(execution)
                self._execution_seq.setdefault(execution_id, next(self._counter))
        self._log_operation("Saved execution", execution_id, {"status": execution.get("status")})

    async def update_execution(self, execution_id: str, patch: Dict[str, Any]) -> None:
        with self._lock:
            document = self._executions.get(execution_id)
            if document is None:
                raise ExecutionNotFoundError(execution_id)
            apply_patch(document, copy.deepcopy(patch))
        self._log_operation("Updated execution", execution_id, {"fields": sorted(patch)})

    async def get_execution(self, execution_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._executions.get(execution_id)
            return copy.deepcopy(document) if document is not None else None

    async def list_executions(
        self,
        recipe_id: Optional[str] = None,
        project_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            matches = [
                (self._sort_key(execution_id, document), document)
                for execution_id, document in self._executions.items()
                if (recipe_id is None or document.get("recipe_id") == recipe_id)
                and (project_id is None or document.get("project_id") == project_id)
            ]
            matches.sort(key=lambda pair: pair[0], reverse=True)
            documents = [copy.deepcopy(document) for _, document in matches]
        return documents[:limit] if limit else documents

    def _sort_key(self, execution_id: str, document: Dict[str, Any]) -> Tuple[datetime, int]:
        started_at = (document.get("context") or {}).get("started_at")
        if not isinstance(started_at, datetime):
            started_at = datetime.min
        return started_at, self._execution_seq.get(execution_id, 0)

    # ------------------------------------------------------------------
    # CAPABILITY CONFIGURATION
    # ------------------------------------------------------------------

    async def get_capability_override(
        self,
        project_id: str,
        stage: str,
        capability: str,
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            config = self._overrides.get((project_id, stage, capability))
            return copy.deepcopy(config) if config is not None else None

    async def set_capability_override(
        self,
        project_id: str,
        stage: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        key = (project_id, stage, capability)
        with self._lock:
            if config is None:
                self._overrides.pop(key, None)
            else:
                self._overrides[key] = copy.deepcopy(config)
        self._log_operation("Set capability override", f"{project_id}/{stage}/{capability}")

    async def get_project_default(self, project_id: str, capability: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            config = self._project_defaults.get((project_id, capability))
            return copy.deepcopy(config) if config is not None else None

    async def set_project_default(
        self,
        project_id: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        key = (project_id, capability)
        with self._lock:
            if config is None:
                self._project_defaults.pop(key, None)
            else:
                self._project_defaults[key] = copy.deepcopy(config)
        self._log_operation("Set project default", f"{project_id}/{capability}")

    async def get_stage_default(self, stage: str, capability: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            config = self._stage_defaults.get((stage, capability))
            return copy.deepcopy(config) if config is not None else None

    async def set_stage_default(
        self,
        stage: str,
        capability: str,
        config: Optional[Dict[str, Any]],
    ) -> None:
        key = (stage, capability)
        with self._lock:
            if config is None:
                self._stage_defaults.pop(key, None)
            else:
                self._stage_defaults[key] = copy.deepcopy(config)
        self._log_operation("Set stage default", f"{stage}/{capability}")

    # ------------------------------------------------------------------
    # PROJECT CREDENTIALS
    # ------------------------------------------------------------------

    async def get_project_credentials(self, project_id: str, provider_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            credentials = self._credentials.get((project_id, provider_id))
            return copy.deepcopy(credentials) if credentials is not None else None

    async def set_project_credentials(
        self,
        project_id: str,
        provider_id: str,
        credentials: Optional[Dict[str, Any]],
    ) -> None:
        key = (project_id, provider_id)
        with self._lock:
            if credentials is None:
                self._credentials.pop(key, None)
            else:
                self._credentials[key] = copy.deepcopy(credentials)
        # Never log the values
        self._log_operation("Set project credentials", f"{project_id}/{provider_id}")


__all__ = ["InMemoryStore"]
