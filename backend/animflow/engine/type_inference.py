"""Logical scalar type inference for logic connections."""
from enum import Enum

from ..models.node_data import ConstantsData
from .graph import Graph


class LogicalType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    COLOR = "color"
    UNKNOWN = "unknown"


_BOOLEAN_KINDS = {"compare", "boolean_op"}
_NUMBER_KINDS = {"math_op"}
_PASS_THROUGH_PORTS = {"if_else": "data", "result": "input"}


class TypeInferencer:
    """Memoized backward walk from an output port to the type it carries.

    A port that is revisited while its own type is still being computed
    (cyclic wiring) resolves to ``UNKNOWN``.
    """

    def __init__(self, graph: Graph):
        self.graph = graph
        self._memo: dict[tuple[str, str], LogicalType] = {}
        self._in_progress: set[tuple[str, str]] = set()

    def infer(self, node_id: str, port_id: str = "output") -> LogicalType:
        key = (node_id, port_id)
        if key in self._memo:
            return self._memo[key]
        if key in self._in_progress:
            return LogicalType.UNKNOWN
        self._in_progress.add(key)
        try:
            result = self._infer(node_id)
        finally:
            self._in_progress.discard(key)
        self._memo[key] = result
        return result

    def _infer(self, node_id: str) -> LogicalType:
        node = self.graph.nodes.get(node_id)
        if node is None:
            return LogicalType.UNKNOWN
        if isinstance(node.data, ConstantsData):
            return LogicalType(node.data.value_type)
        if node.kind in _BOOLEAN_KINDS:
            return LogicalType.BOOLEAN
        if node.kind in _NUMBER_KINDS:
            return LogicalType.NUMBER
        if node.kind in _PASS_THROUGH_PORTS:
            edges = self.graph.get_incoming_edges(node_id, _PASS_THROUGH_PORTS[node.kind])
            if len(edges) != 1:
                return LogicalType.UNKNOWN
            return self.infer(edges[0].source, edges[0].source_handle)
        if node.kind == "merge":
            return self._infer_merge(node_id)
        return LogicalType.UNKNOWN

    def _infer_merge(self, node_id: str) -> LogicalType:
        edges = self.graph.get_incoming_edges(node_id)
        types = {self.infer(e.source, e.source_handle) for e in edges}
        if len(types) == 1:
            return types.pop()
        return LogicalType.UNKNOWN


def infer_logical_type(graph: Graph, node_id: str, port_id: str = "output") -> LogicalType:
    return TypeInferencer(graph).infer(node_id, port_id)
