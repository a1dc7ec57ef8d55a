"""Structural validation run before any node executes.

Checks run in a fixed order and the first violation raises; nothing is
collected or retried.
"""
from collections import deque

from ..config import settings
from ..nodes.base import is_compatible
from ..nodes.registry import NodeRegistry
from .errors import (
    InvalidConnectionError, MissingInsertConnectionError,
    MultipleBatchNodesInPathError, MultipleInsertNodesInSeriesError,
    SceneRequiredError, TooManyScenesError, UnknownNodeKindError,
)
from .graph import Graph
from .type_inference import LogicalType, TypeInferencer

SCENE_KINDS = {"scene", "frame"}
TERMINAL_KINDS = {"scene", "frame", "result"}
GEOMETRY_KINDS = {"triangle", "circle", "rectangle", "text", "image"}

# Ports whose values must infer to a specific scalar type
TYPED_LOGIC_PORTS: dict[str, tuple[LogicalType, set[str]]] = {
    "boolean_op": (LogicalType.BOOLEAN, {"input1", "input2"}),
    "if_else": (LogicalType.BOOLEAN, {"condition"}),
    "math_op": (LogicalType.NUMBER, {"input_a", "input_b"}),
    "compare": (LogicalType.NUMBER, {"input_a", "input_b"}),
}


def validate_graph(graph: Graph, max_scenes: int | None = None) -> None:
    """Raise the first structural violation found in ``graph``."""
    _check_scenes(graph, settings.max_scenes if max_scenes is None else max_scenes)
    _check_connections(graph)
    _check_logic_single_connections(graph)
    _check_typed_logic(graph)
    _check_proper_flow(graph)
    _check_serial(graph, "insert", TERMINAL_KINDS, MultipleInsertNodesInSeriesError)
    _check_serial(graph, "batch", SCENE_KINDS, MultipleBatchNodesInPathError)


def _check_scenes(graph: Graph, max_scenes: int) -> None:
    count = len(graph.nodes_of_kind(*SCENE_KINDS))
    if count == 0:
        raise SceneRequiredError()
    if count > max_scenes:
        raise TooManyScenesError(count, max_scenes)


def _check_connections(graph: Graph) -> None:
    for node in graph.nodes.values():
        if not NodeRegistry.has(node.kind):
            raise UnknownNodeKindError(node.kind, node.id)

    for edge in graph.edges:
        src = graph.nodes.get(edge.source)
        tgt = graph.nodes.get(edge.target)
        if src is None or tgt is None:
            raise InvalidConnectionError(
                f"Edge {edge.id} references missing node",
                edge_id=edge.id, source_node_id=edge.source, target_node_id=edge.target,
            )

    for edge in graph.data_edges:
        src = graph.nodes[edge.source]
        tgt = graph.nodes[edge.target]
        src_dtype = NodeRegistry.get(src.kind).output_type(src.data, edge.source_handle)
        if src_dtype is None:
            raise InvalidConnectionError(
                f"{src.name} has no output '{edge.source_handle}'",
                edge_id=edge.id, source_node_id=src.id, target_node_id=tgt.id,
                node_id=src.id, node_name=src.name,
            )
        inputs = NodeRegistry.get(tgt.kind).INPUT_TYPES(tgt.data)
        if edge.target_handle not in inputs:
            raise InvalidConnectionError(
                f"{tgt.name} has no input '{edge.target_handle}'",
                edge_id=edge.id, source_node_id=src.id, target_node_id=tgt.id,
                node_id=tgt.id, node_name=tgt.name,
            )
        tgt_dtype = inputs[edge.target_handle].dtype
        if not is_compatible(src_dtype, tgt_dtype):
            raise InvalidConnectionError(
                f"Cannot connect {src.name} ({src_dtype.value}) "
                f"to {tgt.name} ({tgt_dtype.value})",
                edge_id=edge.id, source_node_id=src.id, target_node_id=tgt.id,
                node_id=tgt.id, node_name=tgt.name,
            )


def _check_logic_single_connections(graph: Graph) -> None:
    for node in graph.nodes.values():
        node_cls = NodeRegistry.get(node.kind)
        if node_cls.CATEGORY != "logic":
            continue
        for handle in node_cls.INPUT_TYPES(node.data):
            edges = graph.get_incoming_edges(node.id, handle)
            if len(edges) > 1:
                sources = [graph.name_of(e.source) for e in edges]
                raise InvalidConnectionError(
                    f"{node.name} input '{handle}' accepts a single connection "
                    f"but is connected to {', '.join(sources)}",
                    node_id=node.id, node_name=node.name, target_node_id=node.id,
                    port=handle, conflicting_sources=[e.source for e in edges],
                )


def _check_typed_logic(graph: Graph) -> None:
    inferencer = TypeInferencer(graph)
    for node in graph.nodes.values():
        if node.kind not in TYPED_LOGIC_PORTS:
            continue
        expected, ports = TYPED_LOGIC_PORTS[node.kind]
        for edge in graph.get_incoming_edges(node.id):
            if edge.target_handle not in ports:
                continue
            actual = inferencer.infer(edge.source, edge.source_handle)
            if actual != expected:
                raise InvalidConnectionError(
                    f"{node.name} input '{edge.target_handle}' requires a "
                    f"{expected.value} value but {graph.name_of(edge.source)} "
                    f"provides {actual.value}",
                    edge_id=edge.id, source_node_id=edge.source,
                    target_node_id=node.id, node_id=node.id, node_name=node.name,
                    expected_type=expected.value, actual_type=actual.value,
                )


def _reachable(graph: Graph, start: str) -> dict[str, str | None]:
    """BFS over data edges; maps each reached node to its BFS parent."""
    parents: dict[str, str | None] = {start: None}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for succ in sorted(graph.get_successors(current)):
            if succ not in parents:
                parents[succ] = current
                queue.append(succ)
    return parents


def _path_to(parents: dict[str, str | None], end: str) -> list[str]:
    path = [end]
    while parents[path[-1]] is not None:
        path.append(parents[path[-1]])
    return path[::-1]


def _check_proper_flow(graph: Graph) -> None:
    for node in graph.nodes_of_kind(*GEOMETRY_KINDS):
        reached = _reachable(graph, node.id)
        terminal_kinds = {
            graph.nodes[n].kind for n in reached if graph.nodes[n].kind in TERMINAL_KINDS
        }
        if not terminal_kinds or terminal_kinds == {"frame"}:
            continue
        if not any(graph.nodes[n].kind == "insert" for n in reached):
            raise MissingInsertConnectionError(node.name, node.id)


def _check_serial(graph: Graph, kind: str, terminals: set[str], error_cls) -> None:
    """Reject a path that crosses two ``kind`` nodes before reaching a terminal."""
    for first in graph.nodes_of_kind(kind):
        reached = _reachable(graph, first.id)
        for second_id in reached:
            if second_id == first.id or graph.nodes[second_id].kind != kind:
                continue
            downstream = _reachable(graph, second_id)
            terminal = next(
                (n for n in downstream if graph.nodes[n].kind in terminals), None
            )
            if terminal is None:
                continue
            path = _path_to(reached, second_id) + _path_to(downstream, terminal)[1:]
            names = [graph.name_of(n) for n in path]
            raise error_cls(
                [first.name, graph.name_of(second_id)], " -> ".join(names)
            )
