"""Graph data structures for the flow compiler."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..models.node_data import NodeDataBase, parse_node_data


class EdgeKind(str, Enum):
    DATA = "data"
    CONTROL = "control"


@dataclass
class Edge:
    id: str
    source: str
    target: str
    source_handle: str = "output"
    target_handle: str = "input"
    kind: EdgeKind = EdgeKind.DATA

    def __post_init__(self):
        self.kind = EdgeKind(self.kind)


@dataclass
class Node:
    id: str
    kind: str
    data: NodeDataBase | dict[str, Any] | None = None
    position: dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.data, NodeDataBase):
            self.data = parse_node_data(self.kind, self.data, self.id)

    @property
    def name(self) -> str:
        """Human-readable name used in error messages."""
        return self.data.display_name or self.kind.replace("_", " ").title()


@dataclass
class Graph:
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    @classmethod
    def from_lists(cls, nodes: list[Node], edges: list[Edge]) -> "Graph":
        return cls(nodes={n.id: n for n in nodes}, edges=list(edges))

    @property
    def data_edges(self) -> list[Edge]:
        return [e for e in self.edges if e.kind is EdgeKind.DATA]

    def get_incoming_edges(self, node_id: str, handle: str | None = None) -> list[Edge]:
        return [
            e for e in self.data_edges
            if e.target == node_id and (handle is None or e.target_handle == handle)
        ]

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.data_edges if e.source == node_id]

    def get_predecessors(self, node_id: str) -> set[str]:
        return {e.source for e in self.data_edges if e.target == node_id}

    def get_successors(self, node_id: str) -> set[str]:
        return {e.target for e in self.data_edges if e.source == node_id}

    def nodes_of_kind(self, *kinds: str) -> list[Node]:
        return [n for n in self.nodes.values() if n.kind in kinds]

    def name_of(self, node_id: str) -> str:
        node = self.nodes.get(node_id)
        return node.name if node else node_id
