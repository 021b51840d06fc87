# ============================================================================
# DAG VALIDATOR TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Recipe graph validation and ordering
# PURPOSE: Verify structural checks, cycle detection and topological order
# CREATED: 12 OCT 2026
# ============================================================================
"""
DAG Validator Tests

Covers:
1. Node field checks, in the order they are reported
2. Edge checks (unknown nodes, self-loops)
3. Cycle detection
4. Declared dependencies backed by edges
5. Topological order, execution levels, ancestors/descendants

Run with:
    pytest tests/test_validator.py -v
"""

import pytest

from core.errors import CycleDetectedError, StructuralError
from core.models import NodeDefinition
from orchestrator.engine.validator import DAGValidator, get_validator

from conftest import make_node


@pytest.fixture
def validator():
    return DAGValidator()


# ============================================================================
# NODE CHECKS
# ============================================================================

class TestNodeChecks:

    def test_empty_nodes_rejected(self, validator):
        with pytest.raises(StructuralError, match="Nodes must be a non-empty array"):
            validator.validate([], [])

    def test_edges_must_be_list(self, validator):
        with pytest.raises(StructuralError, match="Edges must be an array"):
            validator.validate([make_node("a")], None)

    def test_missing_id(self, validator):
        node = make_node("a")
        del node["id"]
        with pytest.raises(StructuralError, match="Node at index 0 is missing required field: id"):
            validator.validate([node], [])

    def test_duplicate_id(self, validator):
        with pytest.raises(StructuralError, match="Duplicate node ID found: a"):
            validator.validate([make_node("a"), make_node("a")], [])

    def test_missing_name(self, validator):
        node = make_node("a")
        node["name"] = ""
        with pytest.raises(StructuralError, match="Node a is missing required field: name"):
            validator.validate([node], [])

    def test_invalid_type_lists_valid_types(self, validator):
        with pytest.raises(StructuralError) as exc:
            validator.validate([make_node("a", node_type="audio_generation")], [])
        assert "invalid type: audio_generation" in str(exc.value)
        assert "text_generation" in str(exc.value)

    def test_missing_output_key(self, validator):
        node = make_node("a")
        del node["output_key"]
        with pytest.raises(StructuralError, match="missing required field: outputKey"):
            validator.validate([node], [])

    def test_generation_node_requires_model_config(self, validator):
        node = make_node("a")
        del node["capability_config"]
        with pytest.raises(StructuralError, match="missing aiModel configuration"):
            validator.validate([node], [])

    def test_data_processing_needs_no_model_config(self, validator):
        nodes = validator.validate([make_node("a", node_type="data_processing")], [])
        assert nodes[0].capability_config is None

    def test_model_config_requires_provider_and_model(self, validator):
        with pytest.raises(StructuralError, match="aiModel is missing required field: provider"):
            validator.validate([make_node("a", capability_config={"model": "m"})], [])
        with pytest.raises(StructuralError, match="aiModel is missing required field: modelName"):
            validator.validate([make_node("a", capability_config={"provider": "echo"})], [])

    def test_editor_spelling_accepted(self, validator):
        node = {
            "id": "a",
            "name": "A",
            "type": "text_generation",
            "outputKey": "story",
            "aiModel": {"adaptorId": "echo", "modelName": "echo-1"},
            "errorHandling": {"onError": "skip", "defaultOutput": "n/a"},
        }
        parsed = validator.validate([node], [])[0]
        assert parsed.output_key == "story"
        assert parsed.capability_config.provider == "echo"
        assert parsed.capability_config.model == "echo-1"
        assert parsed.error_policy.value == "skip"
        assert parsed.default_output == "n/a"

    def test_model_errors_become_structural(self, validator):
        with pytest.raises(StructuralError, match="Node a is invalid"):
            validator.validate([make_node("a", timeout_seconds=-5)], [])

    def test_accepts_node_definitions(self, validator):
        node = NodeDefinition.model_validate(make_node("a"))
        assert validator.validate([node], []) == [node]


# ============================================================================
# EDGE CHECKS
# ============================================================================

class TestEdgeChecks:

    def test_edge_missing_endpoint(self, validator):
        with pytest.raises(StructuralError, match="Edge at index 0 is missing required field: to"):
            validator.validate([make_node("a")], [{"from": "a"}])

    def test_edge_to_unknown_node(self, validator):
        with pytest.raises(StructuralError, match="Edge references non-existent node: ghost"):
            validator.validate([make_node("a")], [{"from": "a", "to": "ghost"}])

    def test_self_loop(self, validator):
        with pytest.raises(StructuralError, match=r"Self-loops are not allowed. Edge: a -> a"):
            validator.validate([make_node("a")], [{"from": "a", "to": "a"}])

    def test_cycle_detected(self, validator):
        nodes = [make_node("a"), make_node("b"), make_node("c")]
        edges = [{"from": "a", "to": "b"}, {"from": "b", "to": "c"}, {"from": "c", "to": "a"}]
        with pytest.raises(CycleDetectedError):
            validator.validate(nodes, edges)

    def test_cycle_is_structural(self):
        assert issubclass(CycleDetectedError, StructuralError)


# ============================================================================
# DECLARED DEPENDENCIES
# ============================================================================

class TestDependencies:

    def test_dependency_without_edge(self, validator):
        nodes = [make_node("a"), make_node("b"), make_node("c", dependencies=["b"])]
        edges = [{"from": "a", "to": "b"}, {"from": "a", "to": "c"}]
        with pytest.raises(StructuralError, match="declares dependency on b, but no edge exists"):
            validator.validate(nodes, edges)

    def test_dependency_on_root_without_edges(self, validator):
        nodes = [make_node("a"), make_node("b", dependencies=["a"])]
        with pytest.raises(StructuralError, match="no incoming edges but declares dependencies"):
            validator.validate(nodes, [])

    def test_string_dependency_shorthand(self, validator):
        nodes = [make_node("a"), make_node("b", dependencies="a")]
        parsed = validator.validate(nodes, [{"from": "a", "to": "b"}])
        assert parsed[1].dependencies == ["a"]


# ============================================================================
# ORDERING
# ============================================================================

class TestOrdering:

    @pytest.fixture
    def diamond(self):
        nodes = [make_node(n) for n in ("a", "b", "c", "d")]
        edges = [
            {"from": "a", "to": "b"},
            {"from": "a", "to": "c"},
            {"from": "b", "to": "d"},
            {"from": "c", "to": "d"},
        ]
        return nodes, edges

    def test_every_edge_respected(self, validator, diamond):
        nodes, edges = diamond
        order = validator.topological_sort(nodes, edges)
        assert sorted(order) == ["a", "b", "c", "d"]
        for edge in edges:
            assert order.index(edge["from"]) < order.index(edge["to"])

    def test_ties_follow_declaration_order(self, validator):
        nodes = [make_node(n) for n in ("z", "y", "x")]
        assert validator.topological_sort(nodes, []) == ["z", "y", "x"]

    def test_sort_reports_cycle(self, validator):
        nodes = [make_node("a"), make_node("b")]
        edges = [{"from": "a", "to": "b"}, {"from": "b", "to": "a"}]
        with pytest.raises(CycleDetectedError, match="Topological sort failed"):
            validator.topological_sort(nodes, edges)

    def test_execution_levels(self, validator, diamond):
        nodes, edges = diamond
        assert validator.execution_levels(nodes, edges) == [["a"], ["b", "c"], ["d"]]

    def test_ancestors_and_descendants(self, validator, diamond):
        _, edges = diamond
        assert sorted(validator.get_ancestors("d", edges)) == ["a", "b", "c"]
        assert validator.get_ancestors("a", edges) == []
        assert sorted(validator.get_descendants("a", edges)) == ["b", "c", "d"]

    def test_singleton(self):
        assert get_validator() is get_validator()
