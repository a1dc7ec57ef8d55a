"""Base node abstraction and port type definitions."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable

from ..engine.context import ExecutionContext
from ..engine.graph import Node
from ..models.node_data import NodeDataBase


class PortType(str, Enum):
    OBJECT_STREAM = "object_stream"
    DATA = "data"
    BOOLEAN = "boolean"
    TRIGGER = "trigger"
    ANIMATION = "animation"
    SCENE = "scene"


# Which source types can feed which target types
TYPE_COMPATIBILITY: dict[PortType, set[PortType]] = {
    PortType.OBJECT_STREAM: {PortType.OBJECT_STREAM, PortType.DATA},
    PortType.DATA: {PortType.DATA, PortType.BOOLEAN, PortType.TRIGGER},
    PortType.BOOLEAN: {PortType.BOOLEAN, PortType.TRIGGER, PortType.DATA},
    PortType.TRIGGER: {PortType.TRIGGER, PortType.ANIMATION, PortType.DATA},
    PortType.ANIMATION: {PortType.ANIMATION, PortType.SCENE, PortType.DATA},
    PortType.SCENE: {PortType.SCENE},
}


def is_compatible(source: PortType, target: PortType) -> bool:
    return target in TYPE_COMPATIBILITY.get(source, set())


@dataclass
class InputSpec:
    dtype: PortType
    label: str = ""


@dataclass
class OutputSpec:
    dtype: PortType
    name: str


@dataclass
class NodeDefinition:
    """Serializable node definition sent to the frontend."""
    node_kind: str
    display_name: str
    category: str
    description: str
    inputs: dict[str, InputSpec]
    outputs: list[OutputSpec]
    defaults: dict[str, Any]


class BaseNode(ABC):
    """Executor for one node kind.

    Port sets are classmethods of the node's data so that variadic kinds
    (merge, boolean_op, math_op) can derive their handles from configuration.
    """

    CATEGORY: str = "Uncategorized"
    DISPLAY_NAME: str = ""
    DESCRIPTION: str = ""
    DATA_MODEL: type[NodeDataBase] = NodeDataBase

    @classmethod
    @abstractmethod
    def INPUT_TYPES(cls, data: NodeDataBase | None = None) -> dict[str, InputSpec]:
        ...

    @classmethod
    @abstractmethod
    def RETURN_TYPES(cls, data: NodeDataBase | None = None) -> list[OutputSpec]:
        ...

    @abstractmethod
    def execute(self, node: Node, context: ExecutionContext) -> Awaitable[None] | None:
        ...

    @classmethod
    def output_type(cls, data: NodeDataBase | None, handle: str) -> PortType | None:
        for spec in cls.RETURN_TYPES(data):
            if spec.name == handle:
                return spec.dtype
        return None

    @classmethod
    def get_definition(cls, node_kind: str) -> NodeDefinition:
        defaults = cls.DATA_MODEL().model_dump(exclude={"kind", "display_name"})
        return NodeDefinition(
            node_kind=node_kind,
            display_name=cls.DISPLAY_NAME or cls.__name__,
            category=cls.CATEGORY,
            description=cls.DESCRIPTION or cls.__doc__ or "",
            inputs=cls.INPUT_TYPES(),
            outputs=cls.RETURN_TYPES(),
            defaults=defaults,
        )


STREAM_IN = {"input": InputSpec(PortType.OBJECT_STREAM, "Input Stream")}
STREAM_OUT = [OutputSpec(PortType.OBJECT_STREAM, "output")]
