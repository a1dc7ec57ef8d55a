"""Geometry nodes: each emits a single scene object identified by its node id."""
from typing import Any

from ..engine.context import ExecutionContext
from ..engine.graph import Node
from ..models.node_data import (
    CircleData, NodeDataBase, RectangleData, TextData, TriangleData,
)
from ..models.scene import SceneObject
from .base import STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry


class GeometryNode(BaseNode):
    CATEGORY = "geometry"
    OBJECT_TYPE = ""

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {}

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT

    def properties(self, data: NodeDataBase) -> dict[str, Any]:
        return data.model_dump(exclude={"kind", "display_name"})

    def execute(self, node: Node, context: ExecutionContext) -> None:
        obj = SceneObject(
            id=node.id, type=self.OBJECT_TYPE, properties=self.properties(node.data),
        )
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, [obj])


@NodeRegistry.register("triangle")
class TriangleNode(GeometryNode):
    DISPLAY_NAME = "Triangle"
    DESCRIPTION = "Equilateral triangle"
    DATA_MODEL = TriangleData
    OBJECT_TYPE = "triangle"


@NodeRegistry.register("circle")
class CircleNode(GeometryNode):
    DISPLAY_NAME = "Circle"
    DATA_MODEL = CircleData
    OBJECT_TYPE = "circle"


@NodeRegistry.register("rectangle")
class RectangleNode(GeometryNode):
    DISPLAY_NAME = "Rectangle"
    DATA_MODEL = RectangleData
    OBJECT_TYPE = "rectangle"


@NodeRegistry.register("text")
class TextNode(GeometryNode):
    DISPLAY_NAME = "Text"
    DESCRIPTION = "Text label rendered with the given font"
    DATA_MODEL = TextData
    OBJECT_TYPE = "text"
