# ============================================================================
# RECIPE / EXECUTION MODEL TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Pydantic models
# PURPOSE: Verify model parsing, state transitions and document round trips
# CREATED: 12 OCT 2026
# ============================================================================
"""
Model Tests

Run with:
    pytest tests/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from core.contracts import ActionStatus, ErrorPolicy, ExecutionStatus, NodeType
from core.errors import ProviderError
from core.models import (
    ActionResult,
    EdgeDefinition,
    Execution,
    NodeDefinition,
    RecipeDefinition,
    RecordedActionResult,
    RetryPolicy,
)

from conftest import make_node, make_recipe


# ============================================================================
# RECIPE MODELS
# ============================================================================

class TestRecipeModels:

    def test_defaults(self):
        node = NodeDefinition.model_validate(make_node("a"))
        assert node.error_policy == ErrorPolicy.FAIL
        assert node.input_mapping == {}
        assert node.retry is None

    def test_node_type_capability(self):
        assert NodeType.TEXT_GENERATION.capability().value == "textGeneration"
        assert NodeType.DATA_PROCESSING.capability() is None
        assert NodeType.DATA_PROCESSING.requires_provider() is False

    def test_editor_retry_shorthand(self):
        node = NodeDefinition.model_validate(
            make_node("a", errorHandling={"onError": "retry", "maxRetries": 4})
        )
        assert node.error_policy == ErrorPolicy.RETRY
        assert node.retry.max_attempts == 4

    def test_edge_aliases(self):
        edge = EdgeDefinition.model_validate({"from": "a", "to": "b"})
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.model_dump(by_alias=True) == {"from": "a", "to": "b"}

    def test_recipe_lookup(self):
        recipe = RecipeDefinition.model_validate(
            make_recipe([make_node("a"), make_node("b")], [("a", "b")], stageType="casting")
        )
        assert recipe.stage == "casting"
        assert recipe.get_node("b").id == "b"
        assert set(recipe.node_map()) == {"a", "b"}
        with pytest.raises(KeyError):
            recipe.get_node("zzz")


class TestRetryPolicy:

    def test_exponential_capped(self):
        policy = RetryPolicy(initial_delay_seconds=1, max_delay_seconds=5)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 5]

    def test_linear_and_fixed(self):
        assert RetryPolicy(backoff="linear", initial_delay_seconds=2).delay_for(3) == 6
        assert RetryPolicy(backoff="fixed", initial_delay_seconds=2).delay_for(3) == 2

    def test_bounds(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(backoff="random")


# ============================================================================
# EXECUTION
# ============================================================================

class TestExecution:

    def _finished(self, node_id="a", status=ActionStatus.COMPLETED):
        result = ActionResult(node_id=node_id)
        if status == ActionStatus.COMPLETED:
            result.mark_completed("out")
        elif status == ActionStatus.SKIPPED:
            result.mark_skipped("default", ProviderError("boom"))
        else:
            result.mark_failed(ProviderError("boom"))
        return result

    def test_starts_running(self):
        execution = Execution(recipe_id="r")
        assert execution.status == ExecutionStatus.RUNNING
        assert execution.execution_id.startswith("exec_")
        assert not execution.is_terminal

    def test_terminal_state_set_once(self):
        execution = Execution(recipe_id="r")
        execution.mark_completed("final", "story")
        assert execution.final_output_key == "story"
        assert execution.context.completed_at is not None
        with pytest.raises(ValueError):
            execution.mark_failed("late")
        with pytest.raises(ValueError):
            execution.mark_cancelled()

    def test_failure_records_node(self):
        execution = Execution(recipe_id="r")
        execution.mark_failed("x" * 5000, "gen")
        assert execution.context.failed_node_id == "gen"
        assert len(execution.context.error) == 2000

    def test_results_append_only_after_finish(self):
        execution = Execution(recipe_id="r")
        execution.append_result(self._finished("a"))
        execution.append_result(self._finished("b", ActionStatus.SKIPPED))

        with pytest.raises(ValueError):
            execution.append_result(ActionResult(node_id="c"))

        execution.mark_cancelled()
        with pytest.raises(ValueError):
            execution.append_result(self._finished("d"))
        assert [r.node_id for r in execution.action_results] == ["a", "b"]

    def test_appended_result_is_a_copy(self):
        execution = Execution(recipe_id="r")
        result = self._finished("a")
        execution.append_result(result)
        result.output = "mutated"
        assert execution.get_result("a").output == "out"

    def test_appended_result_is_frozen(self):
        execution = Execution(recipe_id="r")
        execution.append_result(self._finished("a"))
        stored = execution.get_result("a")

        with pytest.raises(ValidationError):
            stored.output = "rewritten"
        with pytest.raises(ValidationError):
            stored.mark_failed(ProviderError("late"))
        assert stored.output == "out"
        assert stored.status == ActionStatus.COMPLETED

    def test_restored_results_are_frozen(self):
        execution = Execution(recipe_id="r")
        execution.append_result(self._finished("a"))
        restored = Execution.from_document(execution.to_document())

        assert isinstance(restored.action_results[0], RecordedActionResult)
        with pytest.raises(ValidationError):
            restored.action_results[0].attempts = 9

    def test_skipped_result_keeps_error(self):
        result = self._finished(status=ActionStatus.SKIPPED)
        assert result.output == "default"
        assert result.error.code == "PROVIDER_ERROR"
        assert result.status.is_successful()

    def test_document_round_trip(self):
        execution = Execution(recipe_id="r", project_id="p", input={"topic": "x"})
        execution.append_result(self._finished("a"))
        document = execution.to_document()

        assert "is_terminal" not in document
        restored = Execution.from_document(document)
        assert restored.execution_id == execution.execution_id
        assert restored.action_results[0].output == "out"
