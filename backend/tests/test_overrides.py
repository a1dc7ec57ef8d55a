"""Tests for override layering: bindings, per-object assignments, track overrides."""
import pytest

from animflow.engine.assignments import (
    apply_track_bindings, apply_track_override, deep_merge, find_track_override,
    flatten, merge_object_assignments,
)
from animflow.engine.bindings import OverrideLayers, read_result_value, resolve_bindings
from animflow.engine.context import ExecutionContext
from animflow.engine.errors import DomainError, ExecutionError
from animflow.engine.executor import run_flow
from animflow.engine.graph import Edge, Graph, Node
from animflow.models.scene import (
    AnimationTrack, ObjectAssignment, TrackOverride, VariableBinding,
)


def _bind(node_id):
    return {"bound_result_node_id": node_id}


def _move_track(**kwargs):
    return AnimationTrack(
        id="t1", type="move", duration=2,
        properties={"from": {"x": 0, "y": 0}, "to": {"x": 100, "y": 50}},
        **kwargs,
    )


class TestOverrideLayers:
    def test_precedence(self):
        layers = OverrideLayers(
            object_bound={"x": "object-binding"},
            object_manual={"x": "manual"},
            global_bound={"x": "global-binding"},
        )
        assert layers.resolve("x", "default") == "object-binding"

        layers = OverrideLayers(object_manual={"x": "manual"}, global_bound={"x": "global-binding"})
        assert layers.resolve("x", "default") == "manual"

        layers = OverrideLayers(global_bound={"x": "global-binding"})
        assert layers.resolve("x", "default") == "global-binding"

        assert OverrideLayers().resolve("x", "default") == "default"

    def test_declared_object_binding_masks_manual(self):
        layers = OverrideLayers(
            object_manual={"x": "stale"}, global_bound={"x": "global"}, masked=frozenset({"x"}),
        )
        assert layers.resolve("x", "default") == "global"

    def test_falsy_values_still_win(self):
        layers = OverrideLayers(object_manual={"x": 0}, global_bound={"x": 5})
        assert layers.resolve("x", 1) == 0


class TestBindingLookup:
    def test_reads_output_then_result_port(self):
        context = ExecutionContext(graph=Graph())
        context.set_node_output("r1", "output", "data", 3)
        context.set_node_output("r2", "result", "data", "legacy")
        assert read_result_value(context, "r1") == 3
        assert read_result_value(context, "r2") == "legacy"
        assert read_result_value(context, "r3") is None

    def test_unresolved_and_unset_bindings_are_omitted(self):
        context = ExecutionContext(graph=Graph())
        context.set_node_output("r1", "output", "data", 3)
        bindings = {
            "a": VariableBinding(bound_result_node_id="r1"),
            "b": VariableBinding(bound_result_node_id="missing"),
            "c": VariableBinding(),
        }
        assert resolve_bindings(context, bindings) == {"a": 3}


class TestAssignments:
    def test_flatten_and_deep_merge(self):
        assert flatten({"position": {"x": 1, "y": 2}, "opacity": 0.5}) == {
            "position.x": 1, "position.y": 2, "opacity": 0.5,
        }
        assert deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}}) == {"a": {"x": 1, "y": 3}}

    def test_local_layer_wins_per_field(self):
        upstream = {
            "tri": ObjectAssignment(
                initial={"position": {"x": 1, "y": 2}},
                tracks=(TrackOverride(track_id="t1", duration=4, properties={"to": {"x": 5}}),),
            ),
            "circle": ObjectAssignment(initial={"opacity": 0.3}),
        }
        local = {
            "tri": ObjectAssignment(
                initial={"position": {"x": 9}},
                tracks=(
                    TrackOverride(track_id="t1", easing="ease-in", properties={"to": {"y": 7}}),
                    TrackOverride(type="fade", properties={"to": 0}),
                ),
            ),
        }
        merged = merge_object_assignments(upstream, local)
        assert merged["circle"] == upstream["circle"]
        tri = merged["tri"]
        assert tri.initial == {"position": {"x": 9, "y": 2}}
        first, second = tri.tracks
        assert first.track_id == "t1"
        assert first.duration == 4
        assert first.easing == "ease-in"
        assert first.properties == {"to": {"x": 5, "y": 7}}
        assert second.type == "fade"

    def test_track_override_matching(self):
        by_type = TrackOverride(type="move", duration=9)
        by_id = TrackOverride(track_id="t1", duration=3)
        assert find_track_override(_move_track(), [by_type, by_id]) is by_id
        assert find_track_override(_move_track(), [by_type]) is by_type
        assert find_track_override(_move_track(), [TrackOverride(type="fade")]) is None

    def test_apply_override_with_mask(self):
        override = TrackOverride(track_id="t1", duration=5, properties={"to": {"x": 1, "y": 2}})
        track = apply_track_override(_move_track(), override, masked={"to.x", "duration"})
        assert track.duration == 2
        assert track.properties["to"] == {"x": 100, "y": 2}
        assert track.properties["from"] == {"x": 0, "y": 0}

    def test_track_binding_keys(self):
        track = apply_track_bindings(_move_track(), {
            "move.to.x": 10,
            "track.t1.to.x": 20,
            "move.duration": "4",
            "fade.to": 0,
            "track.other.to.y": 99,
        })
        assert track.properties["to"] == {"x": 20, "y": 50}
        assert track.duration == 4.0


class TestPrecedenceInFlows:
    """Per-object binding > per-object manual > global binding > node default."""

    def _canvas_graph(self, object_binding=True, manual=True, global_binding=True):
        canvas = {"position": {"x": 10, "y": 0}}
        if global_binding:
            canvas["variable_bindings"] = {"position.x": _bind("r_glob")}
        if object_binding:
            canvas["variable_bindings_by_object"] = {"tri": {"position.x": _bind("r_obj")}}
        if manual:
            canvas["per_object_assignments"] = {"tri": {"initial": {"position": {"x": 30}}}}
        return Graph.from_lists(
            [
                Node("c_obj", "constants", {"number_value": 40}),
                Node("r_obj", "result"),
                Node("c_glob", "constants", {"number_value": 20}),
                Node("r_glob", "result"),
                Node("tri", "triangle"),
                Node("ins", "insert"),
                Node("canvas", "canvas", canvas),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "c_obj", "r_obj"),
                Edge("e2", "c_glob", "r_glob"),
                Edge("e3", "tri", "ins"),
                Edge("e4", "ins", "canvas"),
                Edge("e5", "canvas", "scene"),
            ],
        )

    def _x(self, graph):
        context = run_flow(graph)
        return context.scene_objects_by_scene["scene"][0].initial_position["x"]

    def test_canvas_fall_through(self):
        assert self._x(self._canvas_graph()) == 40
        assert self._x(self._canvas_graph(object_binding=False)) == 30
        assert self._x(self._canvas_graph(object_binding=False, manual=False)) == 20
        assert self._x(self._canvas_graph(
            object_binding=False, manual=False, global_binding=False,
        )) == 10

    def test_untouched_fields_keep_object_values(self):
        context = run_flow(self._canvas_graph())
        obj = context.scene_objects_by_scene["scene"][0]
        assert obj.initial_position["y"] == 0
        assert obj.initial_scale == {"x": 1, "y": 1}
        assert obj.properties["color"] == "#ff4444"

    def _animation_graph(self, object_binding=True, manual=True, global_binding=True):
        animation = {"tracks": [_move_track().model_dump()]}
        if global_binding:
            animation["variable_bindings"] = {"move.to.x": _bind("r_glob")}
        if object_binding:
            animation["variable_bindings_by_object"] = {"tri": {"move.to.x": _bind("r_obj")}}
        if manual:
            animation["per_object_assignments"] = {"tri": {"tracks": [
                {"track_id": "t1", "properties": {"to": {"x": 30}}},
            ]}}
        return Graph.from_lists(
            [
                Node("c_obj", "constants", {"number_value": 40}),
                Node("r_obj", "result"),
                Node("c_glob", "constants", {"number_value": 20}),
                Node("r_glob", "result"),
                Node("tri", "triangle"),
                Node("ins", "insert", {"appearance_time": 1}),
                Node("anim", "animation", animation),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "c_obj", "r_obj"),
                Edge("e2", "c_glob", "r_glob"),
                Edge("e3", "tri", "ins"),
                Edge("e4", "ins", "anim"),
                Edge("e5", "anim", "scene"),
            ],
        )

    def _to_x(self, graph):
        context = run_flow(graph)
        (track,) = context.scene_animations["scene"]
        return track.properties["to"]["x"]

    def test_animation_fall_through(self):
        assert self._to_x(self._animation_graph()) == 40
        assert self._to_x(self._animation_graph(object_binding=False)) == 30
        assert self._to_x(self._animation_graph(object_binding=False, manual=False)) == 20
        assert self._to_x(self._animation_graph(
            object_binding=False, manual=False, global_binding=False,
        )) == 100

    def test_scene_track_placement(self):
        context = run_flow(self._animation_graph())
        assert dict(context.get_node_output("anim", "output").metadata.bound_fields) == {}
        (track,) = context.scene_animations["scene"]
        assert track.id == "tri::t1::1"
        assert track.object_id == "tri"
        assert track.start_time == 1
        assert track.properties["to"]["y"] == 50

    @pytest.mark.parametrize("key", ["appearance_time"])
    def test_insert_binding(self, key):
        graph = Graph.from_lists(
            [
                Node("c", "constants", {"number_value": 3.5}),
                Node("r", "result"),
                Node("tri", "triangle"),
                Node("ins", "insert", {"variable_bindings": {key: _bind("r")}}),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "c", "r"),
                Edge("e2", "tri", "ins"),
                Edge("e3", "ins", "scene"),
            ],
        )
        context = run_flow(graph)
        assert context.scene_objects_by_scene["scene"][0].appearance_time == 3.5

    def test_non_numeric_track_binding(self):
        graph = Graph.from_lists(
            [
                Node("c", "constants", {"value_type": "string", "string_value": "abc"}),
                Node("r", "result"),
                Node("circle", "circle"),
                Node("ins", "insert"),
                Node("anim", "animation", {
                    "display_name": "Slide in",
                    "tracks": [_move_track().model_dump()],
                    "variable_bindings": {"move.duration": _bind("r")},
                }),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "c", "r"),
                Edge("e2", "circle", "ins"),
                Edge("e3", "ins", "anim"),
                Edge("e4", "anim", "scene"),
            ],
        )
        with pytest.raises(DomainError) as exc:
            run_flow(graph)
        assert isinstance(exc.value, ExecutionError)
        assert exc.value.details["node_id"] == "anim"
        assert exc.value.details["node_name"] == "Slide in"
        assert exc.value.details["object_id"] == "circle"
        assert exc.value.details["fields"] == ["move.duration"]
