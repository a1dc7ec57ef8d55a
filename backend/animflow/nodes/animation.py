"""Animation node: turns authored tracks into per-object timeline entries."""
from ..engine.assembler import (
    advance_cursor, convert_tracks_to_scene_animations, timeline_baseline,
)
from ..engine.assignments import (
    apply_track_bindings, apply_track_override, find_track_override,
    merge_object_assignments, track_binding_paths,
)
from ..engine.bindings import bound_keys, resolve_bindings
from ..engine.context import ExecutionContext
from ..engine.errors import ExecutionError
from ..engine.graph import Node
from ..engine.metadata import merge_animations
from ..models.node_data import AnimationData
from ..models.scene import AnimationTrack, ObjectAssignment
from .base import STREAM_IN, STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry


@NodeRegistry.register("animation")
class AnimationNode(BaseNode):
    """Applies the node's tracks to every incoming object.

    Each object's tracks start at its timeline baseline: the later of its
    appearance time and the cursor left by earlier Animation nodes on the
    same path. Field values resolve, highest first, from per-object
    bindings, per-object track overrides, node-level bindings and the
    authored tracks.
    """

    CATEGORY = "animation"
    DISPLAY_NAME = "Animation"
    DATA_MODEL = AnimationData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return STREAM_IN

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT

    def resolve_tracks(
        self,
        tracks: list[AnimationTrack],
        global_values: dict,
        object_values: dict,
        object_declared: frozenset[str],
        assignment: ObjectAssignment | None,
    ) -> list[AnimationTrack]:
        resolved = []
        for track in tracks:
            track = apply_track_bindings(track, global_values)
            if assignment is not None:
                masked = track_binding_paths(track, object_declared).values()
                override = find_track_override(track, assignment.tracks)
                track = apply_track_override(track, override, masked)
            resolved.append(apply_track_bindings(track, object_values))
        return resolved

    def execute(self, node: Node, context: ExecutionContext) -> None:
        data: AnimationData = node.data
        objects, metadata = context.collect_objects(node.id)
        assignments = merge_object_assignments(
            metadata.per_object_assignments, data.per_object_assignments,
        )
        global_values = resolve_bindings(context, data.variable_bindings)
        global_declared = bound_keys(data.variable_bindings)

        cursors = dict(metadata.cursors)
        emitted = {}
        for obj in objects:
            per_object = data.variable_bindings_by_object.get(obj.id, {})
            object_declared = bound_keys(per_object)
            try:
                tracks = self.resolve_tracks(
                    data.tracks,
                    global_values,
                    resolve_bindings(context, per_object),
                    object_declared,
                    assignments.get(obj.id),
                )
            except (TypeError, ValueError) as e:
                raise ExecutionError(
                    f"Animation node {node.name} received an invalid bound value",
                    node.id, node.name, object_id=obj.id,
                    fields=sorted(object_declared | global_declared),
                ) from e
            baseline = timeline_baseline(obj, cursors)
            scene_tracks = convert_tracks_to_scene_animations(tracks, obj.id, baseline)
            cursors[obj.id] = advance_cursor(cursors.get(obj.id), baseline, scene_tracks)
            emitted[obj.id] = tuple(scene_tracks)

        metadata = metadata.evolve(
            cursors=cursors,
            per_object_animations=merge_animations(metadata.per_object_animations, emitted),
            per_object_assignments=assignments,
        )
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, objects, metadata)
