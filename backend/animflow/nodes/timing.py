"""Insert node: anchors objects on the timeline."""
from ..engine.bindings import layers_for_object, resolve_bindings
from ..engine.context import ExecutionContext
from ..engine.errors import ExecutionError
from ..engine.graph import Node
from ..models.node_data import InsertData
from .base import STREAM_IN, STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry


@NodeRegistry.register("insert")
class InsertNode(BaseNode):
    """Sets the time at which incoming objects appear in the scene."""

    CATEGORY = "timing"
    DISPLAY_NAME = "Insert"
    DATA_MODEL = InsertData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return STREAM_IN

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT

    def execute(self, node: Node, context: ExecutionContext) -> None:
        data: InsertData = node.data
        objects, metadata = context.collect_objects(node.id)
        global_values = resolve_bindings(context, data.variable_bindings)

        timed = []
        for obj in objects:
            layers = layers_for_object(
                context, obj.id,
                data.variable_bindings, data.variable_bindings_by_object,
                global_values=global_values,
            )
            try:
                appearance = float(layers.resolve("appearance_time", data.appearance_time))
            except (TypeError, ValueError) as e:
                raise ExecutionError(
                    f"Insert node {node.name} received a non-numeric appearance time",
                    node.id, node.name,
                ) from e
            timed.append(obj.model_copy(update={"appearance_time": max(appearance, 0.0)}))

        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, timed, metadata)
