# ============================================================================
# ACTION DISPATCHER
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Node dispatch with timeout and error policy
# PURPOSE: Run one node's action and wrap the outcome in an ActionResult
# CREATED: 09 OCT 2026
# ============================================================================
"""
Action Dispatcher

Executes a single node through the ActionHandler registered for its type.

Every dispatch:
- records started_at / completed_at / duration_ms on the ActionResult
- is bounded by the node timeout (timeout -> ProviderTimeoutError); generation
  handlers apply it to each provider call, others to the whole action
- wraps unexpected exceptions in ProviderError, cause chained

Error policy:
- skip:        returns a SKIPPED result carrying the node's default_output
- fail, retry: raises NodeExecutionError carrying the FAILED result

The dispatcher never retries and never writes execution state; both belong
to the orchestrator.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from core.config import Defaults, get_defaults
from core.contracts import ErrorPolicy
from core.errors import (
    NodeExecutionError,
    ParseError,
    ProviderError,
    ProviderTimeoutError,
    RecipeEngineError,
)
from core.models import ActionResult, CapabilityResolution, NodeDefinition
from handlers.registry import ActionContext, NodeRecordCallback, get_action_or_raise
from infrastructure.storage import BlobStore
from orchestrator.engine.templates import PromptRenderer
from providers.base import CapabilityProvider

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """Runs node actions and applies the node's error policy."""

    def __init__(
        self,
        renderer: Optional[PromptRenderer] = None,
        blob_store: Optional[BlobStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        defaults: Optional[Defaults] = None,
    ):
        self.renderer = renderer or PromptRenderer()
        self.blob_store = blob_store
        self.http_client = http_client
        self._defaults = defaults

    @property
    def defaults(self) -> Defaults:
        return self._defaults or get_defaults()

    def _new_result(
        self,
        node: NodeDefinition,
        resolved_input: Dict[str, Any],
        resolution: Optional[CapabilityResolution],
        attempt: int,
    ) -> ActionResult:
        return ActionResult(
            node_id=node.id,
            node_type=node.type,
            input=resolved_input,
            attempts=attempt,
            provider=resolution.provider if resolution else None,
            model_id=resolution.model_id if resolution else None,
            capability_source=resolution.source.value if resolution else None,
        )

    async def execute(
        self,
        node: NodeDefinition,
        resolved_input: Dict[str, Any],
        provider: Optional[CapabilityProvider] = None,
        resolution: Optional[CapabilityResolution] = None,
        *,
        execution_id: Optional[str] = None,
        project_id: Optional[str] = None,
        on_record: Optional[NodeRecordCallback] = None,
        attempt: int = 1,
    ) -> ActionResult:
        """
        Dispatch one node.

        Args:
            node: Node definition
            resolved_input: Output of input resolution
            provider: Provider instance (generation nodes)
            resolution: How the provider was chosen, recorded on the result
            execution_id: Owning execution (logging, upload paths)
            project_id: Owning project (upload paths)
            on_record: Streamed record callback (node_id, emission)
            attempt: 1-based attempt number recorded on the result

        Returns:
            COMPLETED or SKIPPED ActionResult

        Raises:
            NodeExecutionError: Action failed under the fail or retry policy
        """
        result = self._new_result(node, resolved_input, resolution, attempt)
        timeout = self.defaults.timeouts.get_timeout(node.type.value, node.timeout_seconds)
        ctx = ActionContext(
            node=node,
            input=resolved_input,
            provider=provider,
            resolution=resolution,
            renderer=self.renderer,
            streaming=self.defaults.streaming,
            blob_store=self.blob_store,
            http_client=self.http_client,
            on_record=on_record,
            execution_id=execution_id,
            project_id=project_id,
            timeout=timeout,
        )

        try:
            handler = get_action_or_raise(node.type)
            if handler.times_own_calls:
                action_output = await handler.run(ctx)
            else:
                action_output = await asyncio.wait_for(handler.run(ctx), timeout=timeout)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(
                f"Node {node.id} timed out after {timeout}s", node_id=node.id
            )
            return self._apply_error_policy(node, result, error)
        except RecipeEngineError as e:
            return self._apply_error_policy(node, result, e)
        except Exception as e:
            error = ProviderError(f"Node {node.id} failed: {e}", node_id=node.id)
            error.__cause__ = e
            return self._apply_error_policy(node, result, error)

        result.usage = action_output.usage
        result.records_emitted = action_output.records_emitted
        result.mark_completed(action_output.output)
        logger.info(
            f"Node {node.id} completed in {result.duration_ms}ms"
            + (f" via {result.provider}/{result.model_id}" if result.provider else "")
        )
        return result

    def fail_without_dispatch(
        self,
        node: NodeDefinition,
        resolved_input: Dict[str, Any],
        error: RecipeEngineError,
        resolution: Optional[CapabilityResolution] = None,
        attempt: int = 1,
    ) -> ActionResult:
        """
        Record a failure that happened before dispatch (input or provider
        resolution) under the node's error policy.

        Raises:
            NodeExecutionError: under the fail or retry policy
        """
        result = self._new_result(node, resolved_input, resolution, attempt)
        return self._apply_error_policy(node, result, error)

    def _apply_error_policy(
        self,
        node: NodeDefinition,
        result: ActionResult,
        error: RecipeEngineError,
    ) -> ActionResult:
        if isinstance(error, ParseError):
            logger.error(f"Node {node.id} response did not match the expected shape: {error}")
        else:
            logger.error(f"Node {node.id} failed ({error.code}): {error}")

        if node.error_policy == ErrorPolicy.SKIP:
            result.mark_skipped(node.default_output, error)
            logger.warning(f"Node {node.id} skipped, continuing with default output")
            return result

        result.mark_failed(error)
        raise NodeExecutionError(result, error) from error


__all__ = ["ActionDispatcher"]
