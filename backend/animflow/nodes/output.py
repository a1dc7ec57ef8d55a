"""Terminal nodes that collect objects into scenes."""
import logging

from ..engine.context import ExecutionContext
from ..engine.errors import MissingInsertConnectionError
from ..engine.graph import Node
from ..models.node_data import FrameData, SceneData
from .base import BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry

logger = logging.getLogger(__name__)


class TerminalNode(BaseNode):
    CATEGORY = "output"

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return {"input": InputSpec(PortType.OBJECT_STREAM, "Objects")}

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return []


@NodeRegistry.register("scene")
class SceneNode(TerminalNode):
    """Video scene. Accepts only objects that went through an Insert node."""

    DISPLAY_NAME = "Scene"
    DATA_MODEL = SceneData

    def execute(self, node: Node, context: ExecutionContext) -> None:
        objects, metadata = context.collect_objects(node.id)
        accepted = []
        for obj in objects:
            if obj.appearance_time is None:
                logger.warning(
                    "Scene %s: skipping object %s without an appearance time", node.id, obj.id,
                )
            else:
                accepted.append(obj)
        if objects and not accepted:
            first = objects[0].id
            raise MissingInsertConnectionError(context.graph.name_of(first), first)

        animations = [
            track
            for obj in accepted
            for track in metadata.per_object_animations.get(obj.id, ())
        ]
        context.add_to_scene(
            node.id, accepted, animations, metadata.restrict(o.id for o in accepted),
        )


@NodeRegistry.register("frame")
class FrameNode(TerminalNode):
    """Static single-image output; objects appear at time zero by default."""

    DISPLAY_NAME = "Frame"
    DATA_MODEL = FrameData

    def execute(self, node: Node, context: ExecutionContext) -> None:
        objects, metadata = context.collect_objects(node.id)
        placed = [
            o if o.appearance_time is not None else o.model_copy(update={"appearance_time": 0.0})
            for o in objects
        ]
        context.add_to_scene(node.id, placed, [], metadata.restrict(o.id for o in placed))
