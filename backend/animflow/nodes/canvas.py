"""Canvas node: sets the initial transform and style of objects."""
from typing import Any

from ..engine.assignments import flatten, merge_object_assignments
from ..engine.batch_overrides import expand_batch_overrides
from ..engine.bindings import layers_for_object, resolve_bindings
from ..engine.context import ExecutionContext
from ..engine.errors import ExecutionError
from ..engine.graph import Node
from ..engine.metadata import merge_batch_overrides, merge_bound_fields
from ..models.node_data import CanvasData
from ..models.scene import SceneObject
from .base import STREAM_IN, STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry

# canvas field -> (SceneObject attribute, key inside a dict attribute)
CANVAS_FIELDS: dict[str, tuple[str, str | None]] = {
    "position.x": ("initial_position", "x"),
    "position.y": ("initial_position", "y"),
    "scale.x": ("initial_scale", "x"),
    "scale.y": ("initial_scale", "y"),
    "rotation": ("initial_rotation", None),
    "opacity": ("initial_opacity", None),
    "fill_color": ("properties", "color"),
    "stroke_color": ("properties", "stroke_color"),
    "stroke_width": ("properties", "stroke_width"),
}
STRING_FIELDS = {"fill_color", "stroke_color"}


def _current(obj: SceneObject, field: str) -> Any:
    attribute, key = CANVAS_FIELDS[field]
    value = getattr(obj, attribute)
    return value.get(key) if key else value


def _coerce(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field in STRING_FIELDS:
        return str(value)
    if isinstance(value, bool):
        raise ValueError(f"{field} expects a number")
    return float(value)


@NodeRegistry.register("canvas")
class CanvasNode(BaseNode):
    CATEGORY = "animation"
    DISPLAY_NAME = "Canvas"
    DESCRIPTION = "Position, scale, rotation, opacity and colors of objects"
    DATA_MODEL = CanvasData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return STREAM_IN

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT

    def execute(self, node: Node, context: ExecutionContext) -> None:
        data: CanvasData = node.data
        objects, metadata = context.collect_objects(node.id)
        assignments = merge_object_assignments(
            metadata.per_object_assignments, data.per_object_assignments,
        )
        node_values = flatten(data.model_dump(
            include={"position", "rotation", "scale", "opacity",
                     "fill_color", "stroke_color", "stroke_width"},
            exclude_none=True,
        ))
        global_values = resolve_bindings(context, data.variable_bindings)

        styled = []
        bound: dict[str, frozenset[str]] = {}
        for obj in objects:
            assignment = assignments.get(obj.id)
            layers = layers_for_object(
                context, obj.id,
                data.variable_bindings, data.variable_bindings_by_object,
                manual=flatten(assignment.initial) if assignment else None,
                global_values=global_values,
            )
            update: dict[str, Any] = {
                "initial_position": dict(obj.initial_position),
                "initial_scale": dict(obj.initial_scale),
                "properties": dict(obj.properties),
            }
            for field, (attribute, key) in CANVAS_FIELDS.items():
                default = node_values.get(field, _current(obj, field))
                try:
                    value = _coerce(field, layers.resolve(field, default))
                except (TypeError, ValueError) as e:
                    raise ExecutionError(
                        f"Canvas node {node.name} received an invalid value for {field}",
                        node.id, node.name, object_id=obj.id, field=field,
                    ) from e
                if value is None:
                    continue
                if key:
                    update[attribute][key] = value
                else:
                    update[attribute] = value
            styled.append(obj.model_copy(update=update))
            if layers.bound_fields:
                bound[obj.id] = layers.bound_fields

        metadata = metadata.evolve(
            per_object_assignments=assignments,
            batch_overrides=merge_batch_overrides(
                metadata.batch_overrides,
                expand_batch_overrides(data.batch_overrides_by_field, objects),
            ),
            bound_fields=merge_bound_fields(metadata.bound_fields, bound),
        )
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, styled, metadata)
