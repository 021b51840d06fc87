# ============================================================================
# RECIPE ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Recipe run state machine
# PURPOSE: Validate, order, resolve, dispatch and record a recipe run
# CREATED: 10 OCT 2026
# ============================================================================
"""
Recipe Orchestrator

Drives one Execution of a recipe:

1. Validate the recipe (StructuralError aborts before any record exists)
2. Compute topological order
3. Create the Execution (RUNNING) and save it
4. For each node: check cancellation, resolve inputs, resolve the
   capability provider, dispatch, append the ActionResult, persist, and
   store the output under the node's output_key
5. Node failure: fail -> FAILED and stop; skip -> continue with the
   default output; retry -> re-dispatch with backoff, then fail
   (streamed records of an attempt that can still be retried reach
   on_record only once that attempt succeeds, so each record is
   delivered once)
6. All nodes done -> COMPLETED, final_output = output of the last node in
   topological order

Cancellation is cooperative: an in-flight dispatch finishes, but no further
node is scheduled and the CANCELLED status is never overwritten.

Optional parallel mode (ExecutionDefaults.parallel_branches) dispatches each
execution level concurrently, bounded by max_concurrency, and appends the
results in level order.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from __version__ import __version__
from core.config import Defaults, get_defaults
from core.contracts import ActionStatus, ErrorPolicy, ExecutionStatus
from core.errors import (
    InputResolutionError,
    NodeExecutionError,
    ProviderError,
    ResolutionError,
    StructuralError,
)
from core.logging import log_checkpoint, log_context
from core.models import (
    ActionError,
    ActionResult,
    Execution,
    ExecutionContext,
    NodeDefinition,
    RecipeDefinition,
    RetryPolicy,
)
from handlers.dispatcher import ActionDispatcher
from handlers.registry import NodeRecordCallback
from orchestrator.engine.inputs import resolve_inputs
from orchestrator.engine.validator import DAGValidator
from providers.registry import ProviderRegistry, get_registry
from repositories.base import ExecutionNotFoundError, RecipeNotFoundError, RecipeStore
from services.capability_resolver import CapabilityResolver
from streaming.decoder import RecordEmission

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class NodeTestReport:
    """Outcome of running a single node in isolation."""
    recipe_id: str
    node_id: str
    result: Optional[ActionResult] = None
    dependency_results: List[ActionResult] = field(default_factory=list)
    failed_dependency: Optional[str] = None

    @property
    def status(self) -> ActionStatus:
        if self.result is None:
            return ActionStatus.FAILED
        return self.result.status

    @property
    def output(self) -> Any:
        return self.result.output if self.result else None

    @property
    def error(self) -> Optional[ActionError]:
        if self.result is None:
            return ActionError(
                message=f"Dependency {self.failed_dependency} failed",
                code="DEPENDENCY_FAILED",
            )
        return self.result.error

    @property
    def succeeded(self) -> bool:
        return self.status.is_successful()


@dataclass
class _RunState:
    """Mutable state for one run, owned by a single orchestrator call."""
    execution: Execution
    node_map: Dict[str, NodeDefinition]
    order: List[str]
    external_input: Dict[str, Any]
    on_record: Optional[NodeRecordCallback] = None
    outputs: Dict[str, Any] = field(default_factory=dict)
    current_node_id: Optional[str] = None


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class RecipeOrchestrator:
    """
    Runs recipes against a store, a capability resolver and a dispatcher.

    One orchestrator instance may drive many runs; each Execution is mutated
    only by the call that created it.
    """

    def __init__(
        self,
        store: RecipeStore,
        resolver: Optional[CapabilityResolver] = None,
        dispatcher: Optional[ActionDispatcher] = None,
        provider_registry: Optional[ProviderRegistry] = None,
        validator: Optional[DAGValidator] = None,
        defaults: Optional[Defaults] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Recipe/execution document store
            resolver: Capability resolver (defaults to one over `store`)
            dispatcher: Action dispatcher
            provider_registry: Registry used to instantiate providers
            validator: DAG validator
            defaults: Configuration (defaults to get_defaults())
        """
        self.store = store
        self._defaults = defaults
        self.resolver = resolver or CapabilityResolver(store, self.defaults.capabilities)
        self.dispatcher = dispatcher or ActionDispatcher(defaults=defaults)
        self.providers = provider_registry or get_registry()
        self.validator = validator or DAGValidator()

        # Cancellations requested through this instance
        self._cancel_requested: Set[str] = set()

    @property
    def defaults(self) -> Defaults:
        return self._defaults or get_defaults()

    # ------------------------------------------------------------------
    # ENTRY POINTS
    # ------------------------------------------------------------------

    async def execute_recipe(
        self,
        recipe_id: str,
        external_input: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None,
        stage: Optional[str] = None,
        triggered_by: str = "system",
        on_record: Optional[NodeRecordCallback] = None,
        retry_of: Optional[str] = None,
    ) -> Execution:
        """
        Load a recipe from the store and run it.

        Raises:
            RecipeNotFoundError: recipe_id unknown
            StructuralError: recipe is malformed (no Execution is created)
        """
        recipe = await self._load_recipe(recipe_id)
        return await self.run(
            recipe,
            external_input=external_input,
            project_id=project_id,
            stage=stage,
            triggered_by=triggered_by,
            on_record=on_record,
            retry_of=retry_of,
        )

    async def run(
        self,
        recipe: RecipeDefinition,
        external_input: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None,
        stage: Optional[str] = None,
        triggered_by: str = "system",
        on_record: Optional[NodeRecordCallback] = None,
        retry_of: Optional[str] = None,
    ) -> Execution:
        """
        Run a recipe definition.

        Node failures do not raise: the returned Execution is FAILED with
        context.error and context.failed_node_id set.

        Raises:
            StructuralError: recipe is malformed (no Execution is created)
        """
        nodes = self.validator.validate(recipe.nodes, recipe.edges)
        order = self.validator.topological_sort(nodes, recipe.edges)

        external_input = dict(external_input or {})
        execution = Execution(
            recipe_id=recipe.recipe_id,
            recipe_version=recipe.version,
            project_id=project_id,
            stage=stage or recipe.stage,
            input=external_input,
            context=ExecutionContext(triggered_by=triggered_by),
            retry_of=retry_of,
        )
        await self.store.save_execution(execution.to_document())

        state = _RunState(
            execution=execution,
            node_map={node.id: node for node in nodes},
            order=order,
            external_input=external_input,
            on_record=on_record,
        )

        with log_context(
            execution_id=execution.execution_id,
            recipe_id=recipe.recipe_id,
            project_id=project_id,
            stage=execution.stage,
            component="orchestrator",
        ):
            log_checkpoint("execution_started", {
                "nodes": len(order),
                "triggered_by": triggered_by,
                "retry_of": retry_of,
                "engine_version": __version__,
            })
            try:
                if self.defaults.execution.parallel_branches:
                    levels = self.validator.execution_levels(nodes, recipe.edges)
                    await self._run_levels(state, levels)
                else:
                    await self._run_sequential(state)
            except Exception as e:
                await self._abort(state, e)
                raise
            finally:
                self._cancel_requested.discard(execution.execution_id)

        return execution

    # ------------------------------------------------------------------
    # SCHEDULING
    # ------------------------------------------------------------------

    async def _run_sequential(self, state: _RunState) -> None:
        for node_id in state.order:
            if await self._check_cancelled(state):
                return

            node = state.node_map[node_id]
            state.current_node_id = node_id
            try:
                result = await self._run_node(state, node)
            except NodeExecutionError as e:
                await self._record_result(state, e.result)
                await self._fail(state, node, e.cause)
                return

            await self._record_result(state, result)
            state.outputs[node.output_key] = result.output

        await self._complete(state)

    async def _run_levels(self, state: _RunState, levels: List[List[str]]) -> None:
        semaphore = asyncio.Semaphore(max(1, self.defaults.execution.max_concurrency))

        async def guarded(node: NodeDefinition):
            async with semaphore:
                try:
                    return await self._run_node(state, node)
                except NodeExecutionError as e:
                    return e

        for level_index, level in enumerate(levels):
            if await self._check_cancelled(state):
                return

            logger.debug(f"Dispatching level {level_index} ({len(level)} nodes): {level}")
            nodes = [state.node_map[node_id] for node_id in level]
            state.current_node_id = level[0]
            outcomes = await asyncio.gather(*(guarded(node) for node in nodes))

            first_failure = None
            for node, outcome in zip(nodes, outcomes):
                if isinstance(outcome, NodeExecutionError):
                    await self._record_result(state, outcome.result)
                    if first_failure is None:
                        first_failure = (node, outcome)
                else:
                    await self._record_result(state, outcome)
                    state.outputs[node.output_key] = outcome.output

            if first_failure is not None:
                node, error = first_failure
                await self._fail(state, node, error.cause)
                return

        await self._complete(state)

    # ------------------------------------------------------------------
    # NODE EXECUTION
    # ------------------------------------------------------------------

    async def _run_node(self, state: _RunState, node: NodeDefinition) -> ActionResult:
        """
        Resolve inputs and provider, then dispatch with the node's retry policy.

        Raises:
            NodeExecutionError: node failed under the fail or retry policy
        """
        execution = state.execution
        with log_context(node_id=node.id):
            try:
                resolved = resolve_inputs(
                    node.input_mapping,
                    state.outputs,
                    state.external_input,
                    strict=self.defaults.execution.strict_inputs,
                )
            except InputResolutionError as e:
                return self.dispatcher.fail_without_dispatch(node, {}, e)

            provider = None
            resolution = None
            capability = node.type.capability()
            if capability is not None:
                try:
                    resolution = await self.resolver.resolve(
                        execution.project_id,
                        execution.stage,
                        capability,
                        hint=node.capability_config,
                    )
                    credentials = await self.resolver.credentials_for(execution.project_id, resolution)
                    provider = await self.providers.create(
                        resolution.provider,
                        resolution.model_id,
                        resolution.options,
                        credentials=credentials,
                    )
                except (ResolutionError, ProviderError) as e:
                    return self.dispatcher.fail_without_dispatch(node, resolved, e, resolution)

            result = await self._dispatch_with_retry(state, node, resolved, provider, resolution)

            if result.status == ActionStatus.SKIPPED:
                log_checkpoint("node_skipped", {"error": result.error.message if result.error else None})
            else:
                log_checkpoint("node_completed", {
                    "duration_ms": result.duration_ms,
                    "attempts": result.attempts,
                    "records_emitted": result.records_emitted,
                })
            return result

    async def _dispatch_with_retry(
        self,
        state: _RunState,
        node: NodeDefinition,
        resolved: Dict[str, Any],
        provider,
        resolution,
    ) -> ActionResult:
        policy = self._retry_policy(node)
        max_attempts = policy.max_attempts if policy else 1
        attempt = 1

        while True:
            on_record = state.on_record
            held: List[Tuple[str, RecordEmission]] = []
            if on_record is not None and attempt < max_attempts:
                # Records of an attempt that may still be retried are held
                # until it succeeds
                on_record = lambda node_id, emission: held.append((node_id, emission))
            try:
                result = await self.dispatcher.execute(
                    node,
                    resolved,
                    provider,
                    resolution,
                    execution_id=state.execution.execution_id,
                    project_id=state.execution.project_id,
                    on_record=on_record,
                    attempt=attempt,
                )
            except NodeExecutionError as e:
                if attempt >= max_attempts:
                    if policy:
                        logger.error(f"Node {node.id} failed after {attempt} attempts")
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"Node {node.id} attempt {attempt}/{max_attempts} failed: {e.cause}; "
                    f"retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            for node_id, emission in held:
                state.on_record(node_id, emission)
            return result

    def _retry_policy(self, node: NodeDefinition) -> Optional[RetryPolicy]:
        if node.error_policy != ErrorPolicy.RETRY:
            return None
        if node.retry is not None:
            return node.retry
        return RetryPolicy(**asdict(self.defaults.retry))

    # ------------------------------------------------------------------
    # STATE TRANSITIONS
    # ------------------------------------------------------------------

    async def _record_result(self, state: _RunState, result: ActionResult) -> None:
        execution = state.execution
        execution.append_result(result)
        await self.store.update_execution(execution.execution_id, {
            "action_results": [r.model_dump() for r in execution.action_results],
        })

    async def _check_cancelled(self, state: _RunState) -> bool:
        """True (and the local Execution marked CANCELLED) if the run was cancelled."""
        execution = state.execution
        document = await self.store.get_execution(execution.execution_id)
        stored_status = (document or {}).get("status")
        if execution.execution_id not in self._cancel_requested and \
                stored_status != ExecutionStatus.CANCELLED.value:
            return False

        cancelled_at = ((document or {}).get("context") or {}).get("cancelled_at")
        if execution.can_transition_to(ExecutionStatus.CANCELLED):
            execution.mark_cancelled(cancelled_at)
        logger.info(
            f"Execution {execution.execution_id} cancelled; "
            f"{len(execution.action_results)} of {len(state.order)} nodes ran"
        )
        return True

    async def _complete(self, state: _RunState) -> None:
        # A cancellation that landed during the last dispatch wins
        if await self._check_cancelled(state):
            return

        execution = state.execution
        last_node = state.node_map[state.order[-1]]
        execution.mark_completed(state.outputs.get(last_node.output_key), last_node.output_key)
        await self.store.update_execution(execution.execution_id, {
            "status": execution.status.value,
            "final_output": execution.final_output,
            "final_output_key": execution.final_output_key,
            "context.completed_at": execution.context.completed_at,
        })
        log_checkpoint("execution_completed", {
            "nodes": len(execution.action_results),
            "duration_seconds": execution.duration_seconds,
        })

    async def _fail(self, state: _RunState, node: NodeDefinition, error: BaseException) -> None:
        if await self._check_cancelled(state):
            return

        execution = state.execution
        execution.mark_failed(str(error) or type(error).__name__, node.id)
        await self.store.update_execution(execution.execution_id, {
            "status": execution.status.value,
            "context.error": execution.context.error,
            "context.failed_node_id": node.id,
            "context.completed_at": execution.context.completed_at,
        })
        log_checkpoint("execution_failed", {"failed_node_id": node.id, "error": execution.context.error})

    async def _abort(self, state: _RunState, error: Exception) -> None:
        """Unexpected error inside the run loop: record it, best effort."""
        execution = state.execution
        logger.exception(f"Execution {execution.execution_id} aborted: {error}")
        if not execution.can_transition_to(ExecutionStatus.FAILED):
            return
        execution.mark_failed(f"{type(error).__name__}: {error}", state.current_node_id)
        try:
            await self.store.update_execution(execution.execution_id, {
                "status": execution.status.value,
                "context.error": execution.context.error,
                "context.failed_node_id": state.current_node_id,
                "context.completed_at": execution.context.completed_at,
            })
        except Exception as store_error:
            logger.error(f"Could not record abort of {execution.execution_id}: {store_error}")

    # ------------------------------------------------------------------
    # EXECUTION MANAGEMENT
    # ------------------------------------------------------------------

    async def cancel_execution(self, execution_id: str) -> Execution:
        """
        Mark an execution CANCELLED.

        The running orchestrator stops before its next node. Cancelling a
        terminal execution changes nothing.

        Raises:
            ExecutionNotFoundError: execution_id unknown
        """
        execution = await self.get_execution_status(execution_id)
        if execution.status.is_terminal():
            logger.warning(
                f"Execution {execution_id} is already {execution.status.value}; not cancelling"
            )
            return execution

        execution.mark_cancelled()
        self._cancel_requested.add(execution_id)
        await self.store.update_execution(execution_id, {
            "status": execution.status.value,
            "context.cancelled_at": execution.context.cancelled_at,
            "context.completed_at": execution.context.completed_at,
        })
        with log_context(execution_id=execution_id):
            log_checkpoint("execution_cancelled")
        return execution

    async def retry_execution(
        self,
        execution_id: str,
        triggered_by: Optional[str] = None,
        on_record: Optional[NodeRecordCallback] = None,
    ) -> Execution:
        """
        Run a finished execution again as a new Execution.

        The new run has the same recipe, input, project and stage and links
        back through retry_of; the original record is left untouched.

        Raises:
            ExecutionNotFoundError: execution_id unknown
            ValueError: the execution is still running
        """
        previous = await self.get_execution_status(execution_id)
        if not previous.status.is_terminal():
            raise ValueError(f"Execution {execution_id} is still {previous.status.value}")

        logger.info(f"Retrying execution {execution_id} ({previous.status.value})")
        return await self.execute_recipe(
            previous.recipe_id,
            external_input=previous.input,
            project_id=previous.project_id,
            stage=previous.stage,
            triggered_by=triggered_by or previous.context.triggered_by,
            on_record=on_record,
            retry_of=execution_id,
        )

    async def get_execution_status(self, execution_id: str) -> Execution:
        """
        Raises:
            ExecutionNotFoundError: execution_id unknown
        """
        document = await self.store.get_execution(execution_id)
        if document is None:
            raise ExecutionNotFoundError(execution_id)
        return Execution.from_document(document)

    async def list_recipe_executions(self, recipe_id: str, limit: Optional[int] = None) -> List[Execution]:
        """Executions of a recipe, newest first."""
        documents = await self.store.list_executions(recipe_id=recipe_id, limit=limit)
        return [Execution.from_document(document) for document in documents]

    async def list_project_executions(self, project_id: str, limit: Optional[int] = None) -> List[Execution]:
        """Executions within a project, newest first."""
        documents = await self.store.list_executions(project_id=project_id, limit=limit)
        return [Execution.from_document(document) for document in documents]

    # ------------------------------------------------------------------
    # SINGLE NODE TESTING
    # ------------------------------------------------------------------

    async def test_single_node(
        self,
        recipe_id: str,
        node_id: str,
        external_input: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None,
        stage: Optional[str] = None,
        execute_dependencies: bool = True,
        mock_outputs: Optional[Dict[str, Any]] = None,
        on_record: Optional[NodeRecordCallback] = None,
    ) -> NodeTestReport:
        """
        Run one node in isolation. Nothing is persisted.

        Args:
            recipe_id: Recipe holding the node
            node_id: Node to test
            external_input: Run input
            project_id / stage: Capability resolution context
            execute_dependencies: Run the node's ancestors first (topological
                order), skipping any whose output_key is in mock_outputs
            mock_outputs: output_key -> value seeded before anything runs

        Raises:
            RecipeNotFoundError: recipe_id unknown
            StructuralError: recipe malformed or node_id not in it
        """
        recipe = await self._load_recipe(recipe_id)
        nodes = self.validator.validate(recipe.nodes, recipe.edges)
        node_map = {node.id: node for node in nodes}
        if node_id not in node_map:
            raise StructuralError(f"Node {node_id} not found in recipe {recipe_id}", node_id=node_id)

        order = self.validator.topological_sort(nodes, recipe.edges)
        state = _RunState(
            execution=Execution(
                recipe_id=recipe.recipe_id,
                recipe_version=recipe.version,
                project_id=project_id,
                stage=stage or recipe.stage,
                input=dict(external_input or {}),
                context=ExecutionContext(triggered_by="node_test"),
            ),
            node_map=node_map,
            order=order,
            external_input=dict(external_input or {}),
            on_record=on_record,
            outputs=dict(mock_outputs or {}),
        )
        report = NodeTestReport(recipe_id=recipe_id, node_id=node_id)

        with log_context(
            execution_id=state.execution.execution_id,
            recipe_id=recipe_id,
            component="node_test",
        ):
            if execute_dependencies:
                ancestors = set(self.validator.get_ancestors(node_id, recipe.edges))
                for dep_id in order:
                    dependency = node_map[dep_id]
                    if dep_id not in ancestors or dependency.output_key in state.outputs:
                        continue
                    try:
                        dep_result = await self._run_node(state, dependency)
                    except NodeExecutionError as e:
                        report.dependency_results.append(e.result)
                        report.failed_dependency = dep_id
                        logger.warning(f"Node test of {node_id} stopped: dependency {dep_id} failed")
                        return report
                    report.dependency_results.append(dep_result)
                    state.outputs[dependency.output_key] = dep_result.output

            try:
                report.result = await self._run_node(state, node_map[node_id])
            except NodeExecutionError as e:
                report.result = e.result

        logger.info(f"Node test {recipe_id}/{node_id}: {report.status.value}")
        return report

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    async def _load_recipe(self, recipe_id: str) -> RecipeDefinition:
        document = await self.store.get_recipe(recipe_id)
        if document is None:
            raise RecipeNotFoundError(recipe_id)
        try:
            return RecipeDefinition.model_validate(document)
        except ValidationError as e:
            # Prefer the validator's message when the graph itself is at fault
            self.validator.validate(document.get("nodes") or [], document.get("edges") or [])
            raise StructuralError(f"Recipe {recipe_id} is invalid: {e.errors()[0].get('msg')}") from e


__all__ = ["RecipeOrchestrator", "NodeTestReport"]
