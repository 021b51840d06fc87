# ============================================================================
# DAG VALIDATOR
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Recipe graph validation and ordering
# PURPOSE: Reject malformed recipes, compute execution order
# CREATED: 07 OCT 2026
# ============================================================================
"""
DAG Validator

Structural validation and ordering for recipe graphs.

Checks (in order, first failure raises):
- Nodes: present, parseable, unique ids, provider hints on generation nodes
- Edges: both endpoints exist, no self-loops
- Cycles: DFS with an active-path set
- Declared dependencies are backed by incoming edges

The validator is stateless - it takes nodes and edges and returns decisions.
Nodes may be NodeDefinition instances or raw recipe dicts (snake or camel case).
"""

import logging
from collections import defaultdict, deque
from typing import Any, Dict, Iterable, List, Sequence, Set, Union

from pydantic import ValidationError

from core.contracts import NodeType
from core.errors import CycleDetectedError, StructuralError
from core.models import EdgeDefinition, NodeDefinition

logger = logging.getLogger(__name__)

NodeLike = Union[NodeDefinition, Dict[str, Any]]
EdgeLike = Union[EdgeDefinition, Dict[str, Any]]

_VALID_TYPES = [t.value for t in NodeType]


def _field(raw: Any, *names: str) -> Any:
    """First non-empty value among the given spellings."""
    for name in names:
        if isinstance(raw, dict):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value not in (None, ""):
            return value
    return None


def _type_value(value: Any) -> Any:
    return getattr(value, "value", value)


class DAGValidator:
    """Validates recipe DAG structure and provides execution ordering."""

    # ------------------------------------------------------------------
    # VALIDATION
    # ------------------------------------------------------------------

    def validate(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
    ) -> List[NodeDefinition]:
        """
        Validate an entire recipe graph.

        Args:
            nodes: Node definitions or raw node dicts
            edges: Edge definitions or raw {"from", "to"} dicts

        Returns:
            Parsed node definitions, in declaration order

        Raises:
            StructuralError: Graph is malformed
            CycleDetectedError: Edge set contains a cycle
        """
        if not isinstance(nodes, (list, tuple)) or len(nodes) == 0:
            raise StructuralError("Nodes must be a non-empty array")
        if not isinstance(edges, (list, tuple)):
            raise StructuralError("Edges must be an array")

        parsed_nodes = self._validate_nodes(nodes)
        parsed_edges = self._validate_edges(parsed_nodes, edges)
        self._check_for_cycles(parsed_nodes, parsed_edges)
        self._validate_dependencies(parsed_nodes, parsed_edges)

        logger.debug(
            f"Validated recipe graph: {len(parsed_nodes)} nodes, {len(parsed_edges)} edges"
        )
        return parsed_nodes

    def _validate_nodes(self, nodes: Sequence[NodeLike]) -> List[NodeDefinition]:
        seen: Set[str] = set()
        parsed: List[NodeDefinition] = []

        for index, raw in enumerate(nodes):
            node_id = _field(raw, "id")
            if not node_id:
                raise StructuralError(f"Node at index {index} is missing required field: id")
            if node_id in seen:
                raise StructuralError(f"Duplicate node ID found: {node_id}")
            seen.add(node_id)

            if not _field(raw, "name"):
                raise StructuralError(f"Node {node_id} is missing required field: name")

            node_type = _type_value(_field(raw, "type"))
            if not node_type:
                raise StructuralError(f"Node {node_id} is missing required field: type")
            if node_type not in _VALID_TYPES:
                raise StructuralError(
                    f"Node {node_id} has invalid type: {node_type}. "
                    f"Must be one of: {', '.join(_VALID_TYPES)}",
                    node_id=node_id,
                )

            if not _field(raw, "output_key", "outputKey"):
                raise StructuralError(
                    f"Node {node_id} is missing required field: outputKey", node_id=node_id
                )

            hint = _field(raw, "capability_config", "capabilityConfig", "aiModel")
            if node_type != NodeType.DATA_PROCESSING.value and not hint:
                raise StructuralError(
                    f"Node {node_id} (type: {node_type}) is missing aiModel configuration",
                    node_id=node_id,
                )
            if hint:
                if not _field(hint, "provider", "adaptor", "adaptorId"):
                    raise StructuralError(
                        f"Node {node_id} aiModel is missing required field: provider",
                        node_id=node_id,
                    )
                if not _field(hint, "model", "modelName", "modelId"):
                    raise StructuralError(
                        f"Node {node_id} aiModel is missing required field: modelName",
                        node_id=node_id,
                    )

            dependencies = _field(raw, "dependencies")
            if dependencies is not None and not isinstance(dependencies, (list, tuple, str)):
                raise StructuralError(
                    f"Node {node_id} dependencies must be an array", node_id=node_id
                )

            parsed.append(self._parse_node(raw, node_id))

        return parsed

    def _parse_node(self, raw: NodeLike, node_id: str) -> NodeDefinition:
        if isinstance(raw, NodeDefinition):
            return raw
        try:
            return NodeDefinition.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise StructuralError(
                f"Node {node_id} is invalid: {location}: {first.get('msg')}",
                node_id=node_id,
            ) from e

    def _validate_edges(
        self,
        nodes: Sequence[NodeDefinition],
        edges: Sequence[EdgeLike],
    ) -> List[EdgeDefinition]:
        node_ids = {node.id for node in nodes}
        parsed: List[EdgeDefinition] = []

        for index, raw in enumerate(edges):
            source = _field(raw, "source", "from", "from_node")
            target = _field(raw, "target", "to", "to_node")
            if not source:
                raise StructuralError(f"Edge at index {index} is missing required field: from")
            if not target:
                raise StructuralError(f"Edge at index {index} is missing required field: to")
            if source not in node_ids:
                raise StructuralError(f"Edge references non-existent node: {source}")
            if target not in node_ids:
                raise StructuralError(f"Edge references non-existent node: {target}")
            if source == target:
                raise StructuralError(
                    f"Self-loops are not allowed. Edge: {source} -> {target}"
                )
            parsed.append(EdgeDefinition(source=source, target=target))

        return parsed

    def _check_for_cycles(
        self,
        nodes: Sequence[NodeDefinition],
        edges: Sequence[EdgeDefinition],
    ) -> None:
        adjacency = self._adjacency(nodes, edges)
        visited: Set[str] = set()
        active: Set[str] = set()

        # Iterative DFS; recipes from the editor can be deep chains
        for start in adjacency:
            if start in visited:
                continue
            stack = [(start, iter(adjacency[start]))]
            visited.add(start)
            active.add(start)
            while stack:
                node_id, neighbors = stack[-1]
                advanced = False
                for neighbor in neighbors:
                    if neighbor in active:
                        logger.warning(f"Cycle detected at edge {node_id} -> {neighbor}")
                        raise CycleDetectedError()
                    if neighbor not in visited:
                        visited.add(neighbor)
                        active.add(neighbor)
                        stack.append((neighbor, iter(adjacency[neighbor])))
                        advanced = True
                        break
                if not advanced:
                    active.discard(node_id)
                    stack.pop()

    def _validate_dependencies(
        self,
        nodes: Sequence[NodeDefinition],
        edges: Sequence[EdgeDefinition],
    ) -> None:
        incoming: Dict[str, List[str]] = {node.id: [] for node in nodes}
        for edge in edges:
            incoming[edge.target].append(edge.source)

        for node in nodes:
            expected = incoming[node.id]
            declared = node.dependencies or []
            if not expected and declared:
                raise StructuralError(
                    f"Node {node.id} has no incoming edges but declares dependencies",
                    node_id=node.id,
                )
            for dep in declared:
                if dep not in expected:
                    raise StructuralError(
                        f"Node {node.id} declares dependency on {dep}, "
                        f"but no edge exists from {dep} to {node.id}",
                        node_id=node.id,
                    )

    # ------------------------------------------------------------------
    # ORDERING
    # ------------------------------------------------------------------

    def topological_sort(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
    ) -> List[str]:
        """
        Kahn's algorithm, ties broken by node declaration order.

        Returns:
            Node ids in execution order

        Raises:
            CycleDetectedError: Not every node could be ordered
        """
        node_ids = [_field(node, "id") for node in nodes]
        adjacency = {node_id: [] for node_id in node_ids}
        in_degree = {node_id: 0 for node_id in node_ids}

        for source, target in self._edge_pairs(edges):
            adjacency[source].append(target)
            in_degree[target] += 1

        queue = deque(node_id for node_id in node_ids if in_degree[node_id] == 0)
        ordered: List[str] = []

        while queue:
            node_id = queue.popleft()
            ordered.append(node_id)
            for neighbor in adjacency[node_id]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        if len(ordered) != len(node_ids):
            raise CycleDetectedError(
                "Topological sort failed - likely due to cycle in graph"
            )
        return ordered

    def execution_levels(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
    ) -> List[List[str]]:
        """
        Group the topological order into levels.

        Every dependency of a node lives in an earlier level, so the nodes of
        one level can run concurrently. Within a level, topological order is kept.
        """
        order = self.topological_sort(nodes, edges)
        predecessors: Dict[str, List[str]] = defaultdict(list)
        for source, target in self._edge_pairs(edges):
            predecessors[target].append(source)

        level_of: Dict[str, int] = {}
        levels: List[List[str]] = []
        for node_id in order:
            level = 1 + max((level_of[p] for p in predecessors[node_id]), default=-1)
            level_of[node_id] = level
            if level == len(levels):
                levels.append([])
            levels[level].append(node_id)
        return levels

    def get_ancestors(self, node_id: str, edges: Iterable[EdgeLike]) -> List[str]:
        """All nodes that can reach node_id, in discovery order."""
        return self._reachable(node_id, edges, reverse=True)

    def get_descendants(self, node_id: str, edges: Iterable[EdgeLike]) -> List[str]:
        """All nodes reachable from node_id, in discovery order."""
        return self._reachable(node_id, edges, reverse=False)

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    def _reachable(self, node_id: str, edges: Iterable[EdgeLike], reverse: bool) -> List[str]:
        neighbors: Dict[str, List[str]] = defaultdict(list)
        for source, target in self._edge_pairs(edges):
            if reverse:
                neighbors[target].append(source)
            else:
                neighbors[source].append(target)

        found: Dict[str, None] = {}
        stack = [node_id]
        visited = {node_id}
        while stack:
            current = stack.pop()
            for neighbor in neighbors[current]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    found[neighbor] = None
                    stack.append(neighbor)
        return list(found)

    def _adjacency(
        self,
        nodes: Sequence[NodeDefinition],
        edges: Sequence[EdgeDefinition],
    ) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {node.id: [] for node in nodes}
        for edge in edges:
            adjacency[edge.source].append(edge.target)
        return adjacency

    @staticmethod
    def _edge_pairs(edges: Iterable[EdgeLike]) -> List[tuple]:
        return [
            (_field(edge, "source", "from"), _field(edge, "target", "to"))
            for edge in edges
        ]


# ============================================================================
# MODULE-LEVEL FUNCTIONS
# ============================================================================

_validator = None


def get_validator() -> DAGValidator:
    """Get singleton validator instance."""
    global _validator
    if _validator is None:
        _validator = DAGValidator()
    return _validator


__all__ = [
    "DAGValidator",
    "get_validator",
]
