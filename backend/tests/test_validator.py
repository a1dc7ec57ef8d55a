"""Tests for structural validation: scenes, ports, logic typing, flow shape."""
import pytest

from animflow.engine.errors import (
    InvalidConnectionError, MissingInsertConnectionError,
    MultipleBatchNodesInPathError, MultipleInsertNodesInSeriesError,
    SceneRequiredError, TooManyScenesError, UnknownNodeKindError,
)
from animflow.engine.graph import Edge, Graph, Node
from animflow.engine.validator import validate_graph
from animflow.nodes.registry import NodeRegistry


def _graph(nodes, edges=()):
    return Graph.from_lists(nodes, list(edges))


def _number(node_id, value=1):
    return Node(node_id, "constants", {"value_type": "number", "number_value": value})


def _boolean(node_id, value=True):
    return Node(node_id, "constants", {"value_type": "boolean", "boolean_value": value})


class TestSceneCardinality:
    def test_valid_graph(self, inserted_triangle_graph):
        assert validate_graph(inserted_triangle_graph) is None

    def test_no_scene(self):
        graph = _graph([Node("tri", "triangle")])
        with pytest.raises(SceneRequiredError):
            validate_graph(graph)

    def test_empty_graph(self):
        with pytest.raises(SceneRequiredError):
            validate_graph(Graph())

    def test_too_many_scenes(self):
        graph = _graph([Node(f"s{i}", "scene") for i in range(3)])
        with pytest.raises(TooManyScenesError) as exc:
            validate_graph(graph, max_scenes=2)
        assert exc.value.details == {"count": 3, "max_scenes": 2}

    def test_zero_limit_is_honored(self):
        with pytest.raises(TooManyScenesError) as exc:
            validate_graph(_graph([Node("s", "scene")]), max_scenes=0)
        assert exc.value.details == {"count": 1, "max_scenes": 0}

    def test_default_limit_is_eight(self):
        validate_graph(_graph([Node(f"s{i}", "scene") for i in range(8)]))
        with pytest.raises(TooManyScenesError):
            validate_graph(_graph([Node(f"s{i}", "scene") for i in range(9)]))

    def test_frame_counts_as_scene(self):
        assert validate_graph(_graph([Node("f", "frame")])) is None


class TestConnections:
    def test_unknown_kind_rejected_on_construction(self):
        with pytest.raises(UnknownNodeKindError, match="wobble"):
            Node("x", "wobble")

    def test_kind_without_executor(self, monkeypatch, inserted_triangle_graph):
        monkeypatch.delitem(NodeRegistry._nodes, "triangle")
        with pytest.raises(UnknownNodeKindError) as exc:
            validate_graph(inserted_triangle_graph)
        assert isinstance(exc.value, InvalidConnectionError)
        assert exc.value.details["node_id"] == "tri"

    def test_dangling_edge(self):
        graph = _graph([Node("scene", "scene")], [Edge("e1", "ghost", "scene")])
        with pytest.raises(InvalidConnectionError, match="missing node") as exc:
            validate_graph(graph)
        assert exc.value.details["edge_id"] == "e1"

    def test_unknown_source_port(self):
        graph = _graph(
            [Node("tri", "triangle"), Node("scene", "scene")],
            [Edge("e1", "tri", "scene", source_handle="nope")],
        )
        with pytest.raises(InvalidConnectionError, match="no output 'nope'"):
            validate_graph(graph)

    def test_unknown_target_port(self):
        graph = _graph(
            [Node("tri", "triangle"), Node("scene", "scene")],
            [Edge("e1", "tri", "scene", target_handle="nope")],
        )
        with pytest.raises(InvalidConnectionError, match="no input 'nope'"):
            validate_graph(graph)

    def test_incompatible_types(self):
        graph = _graph(
            [_number("num"), Node("ins", "insert"), Node("scene", "scene")],
            [Edge("e1", "num", "ins"), Edge("e2", "ins", "scene")],
        )
        with pytest.raises(InvalidConnectionError, match="Cannot connect") as exc:
            validate_graph(graph)
        assert exc.value.details["edge_id"] == "e1"
        assert exc.value.details["target_node_id"] == "ins"

    def test_merge_ports_follow_port_count(self):
        nodes = [
            Node("tri", "triangle"),
            Node("ins", "insert"),
            Node("merge", "merge", {"input_port_count": 3}),
            Node("scene", "scene"),
        ]
        edges = [
            Edge("e1", "tri", "ins"),
            Edge("e2", "ins", "merge", target_handle="input3"),
            Edge("e3", "merge", "scene"),
        ]
        validate_graph(_graph(nodes, edges))

        nodes[2] = Node("merge", "merge", {"input_port_count": 2})
        with pytest.raises(InvalidConnectionError, match="no input 'input3'"):
            validate_graph(_graph(nodes, edges))

    def test_not_operator_has_single_input(self):
        graph = _graph(
            [
                _boolean("a"), _boolean("b"),
                Node("op", "boolean_op", {"operator": "not"}),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "a", "op", target_handle="input1"),
                Edge("e2", "b", "op", target_handle="input2"),
            ],
        )
        with pytest.raises(InvalidConnectionError, match="no input 'input2'"):
            validate_graph(graph)

    def test_control_edges_are_not_type_checked(self, inserted_triangle_graph):
        inserted_triangle_graph.edges.append(
            Edge("c1", "scene", "tri", source_handle="done", target_handle="go", kind="control")
        )
        assert validate_graph(inserted_triangle_graph) is None


class TestLogicConnections:
    def test_single_connection_per_logic_port(self):
        graph = _graph(
            [_number("c1"), _number("c2"), Node("res", "result"), Node("scene", "scene")],
            [Edge("e1", "c1", "res"), Edge("e2", "c2", "res")],
        )
        with pytest.raises(InvalidConnectionError, match="single connection") as exc:
            validate_graph(graph)
        assert exc.value.details["node_id"] == "res"
        assert exc.value.details["conflicting_sources"] == ["c1", "c2"]

    def test_boolean_port_rejects_number(self):
        graph = _graph(
            [_number("num"), Node("op", "boolean_op"), Node("scene", "scene")],
            [Edge("e1", "num", "op", target_handle="input1")],
        )
        with pytest.raises(InvalidConnectionError, match="requires a boolean") as exc:
            validate_graph(graph)
        assert exc.value.details["actual_type"] == "number"

    def test_number_port_rejects_string(self):
        graph = _graph(
            [
                Node("txt", "constants", {"value_type": "string", "string_value": "a"}),
                Node("math", "math_op"),
                Node("scene", "scene"),
            ],
            [Edge("e1", "txt", "math", target_handle="input_a")],
        )
        with pytest.raises(InvalidConnectionError, match="requires a number"):
            validate_graph(graph)

    def test_compare_feeds_boolean_op(self):
        graph = _graph(
            [
                _number("a", 1), _number("b", 2),
                Node("cmp", "compare", {"operator": "lt"}),
                Node("op", "boolean_op", {"operator": "not"}),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "a", "cmp", target_handle="input_a"),
                Edge("e2", "b", "cmp", target_handle="input_b"),
                Edge("e3", "cmp", "op", target_handle="input1"),
            ],
        )
        assert validate_graph(graph) is None

    def test_condition_traced_through_if_else(self):
        graph = _graph(
            [
                _boolean("flag"), _boolean("value"),
                Node("branch", "if_else"),
                Node("cond2", "if_else"),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "flag", "branch", target_handle="condition"),
                Edge("e2", "value", "branch", target_handle="data"),
                Edge("e3", "branch", "cond2", source_handle="true_path",
                     target_handle="condition"),
            ],
        )
        assert validate_graph(graph) is None

    def test_geometry_into_math_rejected(self):
        graph = _graph(
            [Node("tri", "triangle"), Node("math", "math_op"), Node("scene", "scene")],
            [Edge("e1", "tri", "math", target_handle="input_a")],
        )
        with pytest.raises(InvalidConnectionError, match="provides unknown"):
            validate_graph(graph)


class TestProperFlow:
    def test_geometry_without_insert(self):
        graph = _graph(
            [Node("circle", "circle"), Node("scene", "scene")],
            [Edge("e1", "circle", "scene")],
        )
        with pytest.raises(MissingInsertConnectionError, match="Circle") as exc:
            validate_graph(graph)
        assert exc.value.details == {"node_id": "circle", "node_name": "Circle"}

    def test_uses_display_name(self):
        graph = _graph(
            [Node("c", "circle", {"display_name": "Sun"}), Node("scene", "scene")],
            [Edge("e1", "c", "scene")],
        )
        with pytest.raises(MissingInsertConnectionError, match="Geometry node Sun"):
            validate_graph(graph)

    def test_insert_further_downstream(self):
        graph = _graph(
            [
                Node("circle", "circle"), Node("canvas", "canvas"),
                Node("ins", "insert"), Node("scene", "scene"),
            ],
            [
                Edge("e1", "circle", "canvas"),
                Edge("e2", "canvas", "ins"),
                Edge("e3", "ins", "scene"),
            ],
        )
        assert validate_graph(graph) is None

    def test_frame_needs_no_insert(self):
        graph = _graph(
            [Node("circle", "circle"), Node("frame", "frame")],
            [Edge("e1", "circle", "frame")],
        )
        assert validate_graph(graph) is None

    def test_unconnected_geometry_is_allowed(self):
        graph = _graph([Node("circle", "circle"), Node("scene", "scene")])
        assert validate_graph(graph) is None


class TestSerialInserts:
    def test_two_inserts_in_series(self):
        graph = _graph(
            [
                Node("tri", "triangle"),
                Node("i1", "insert", {"display_name": "Insert A"}),
                Node("i2", "insert", {"display_name": "Insert B"}),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "tri", "i1"),
                Edge("e2", "i1", "i2"),
                Edge("e3", "i2", "scene"),
            ],
        )
        with pytest.raises(MultipleInsertNodesInSeriesError) as exc:
            validate_graph(graph)
        assert exc.value.insert_node_names == ["Insert A", "Insert B"]
        assert exc.value.details["path_description"] == (
            "Insert A -> Insert B -> Scene"
        )

    def test_parallel_inserts_are_fine(self):
        graph = _graph(
            [
                Node("tri", "triangle"), Node("circle", "circle"),
                Node("i1", "insert"), Node("i2", "insert"),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "tri", "i1"),
                Edge("e2", "circle", "i2"),
                Edge("e3", "i1", "scene"),
                Edge("e4", "i2", "scene"),
            ],
        )
        assert validate_graph(graph) is None

    def test_two_batches_in_series(self):
        graph = _graph(
            [
                Node("tri", "triangle"),
                Node("b1", "batch", {"keys": ["a"]}),
                Node("b2", "batch", {"keys": ["a"]}),
                Node("ins", "insert"),
                Node("scene", "scene"),
            ],
            [
                Edge("e1", "tri", "b1"),
                Edge("e2", "b1", "b2"),
                Edge("e3", "b2", "ins"),
                Edge("e4", "ins", "scene"),
            ],
        )
        with pytest.raises(MultipleBatchNodesInPathError) as exc:
            validate_graph(graph)
        assert exc.value.details["batch_node_names"] == ["Batch", "Batch"]
