"""Shared test fixtures for AnimFlow backend tests."""
import sys
from pathlib import Path

import pytest

# Ensure animflow package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from animflow.engine.graph import Edge, Graph, Node


@pytest.fixture(scope="session", autouse=True)
def register_nodes():
    """Discover and register all node executors once per test session."""
    from animflow.nodes.registry import NodeRegistry
    NodeRegistry.discover("animflow.nodes")


@pytest.fixture
def inserted_triangle_graph():
    """Triangle -> Insert(appearance_time=1) -> Scene."""
    return Graph.from_lists(
        [
            Node("tri", "triangle"),
            Node("ins", "insert", {"appearance_time": 1}),
            Node("scene", "scene"),
        ],
        [
            Edge("e1", "tri", "ins"),
            Edge("e2", "ins", "scene"),
        ],
    )


@pytest.fixture
def chained_animation_graph():
    """Circle -> Insert(2) -> Animation(move, 3s) -> Animation(fade, 1s) -> Scene."""
    return Graph.from_lists(
        [
            Node("circle", "circle"),
            Node("ins", "insert", {"appearance_time": 2}),
            Node("anim1", "animation", {"tracks": [{
                "id": "m1", "type": "move", "duration": 3,
                "properties": {"from": {"x": 0, "y": 0}, "to": {"x": 100, "y": 0}},
            }]}),
            Node("anim2", "animation", {"tracks": [{
                "id": "f1", "type": "fade", "duration": 1,
                "properties": {"from": 1, "to": 0},
            }]}),
            Node("scene", "scene"),
        ],
        [
            Edge("e1", "circle", "ins"),
            Edge("e2", "ins", "anim1"),
            Edge("e3", "anim1", "anim2"),
            Edge("e4", "anim2", "scene"),
        ],
    )
