"""Per-run execution state shared by all executors."""
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.scene import SceneAnimationTrack, SceneObject
from .errors import AnimationLimitError
from .graph import Graph
from .metadata import EMPTY_METADATA, OutputMetadata, merge_metadata


class AssetResolver(Protocol):
    async def resolve(self, asset_id: str) -> Any:
        ...


@dataclass
class NodeOutput:
    node_id: str
    port_id: str
    type: str
    data: Any
    metadata: OutputMetadata = EMPTY_METADATA


@dataclass
class ExecutionLogEntry:
    node_id: str
    timestamp: float
    action: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutionContext:
    """Mutable store for one run. Never shared between runs."""
    graph: Graph
    asset_store: AssetResolver | None = None
    max_animations: int = 100_000

    node_outputs: dict[str, NodeOutput] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    executed_nodes: set[str] = field(default_factory=set)
    skipped_nodes: set[str] = field(default_factory=set)
    current_time: float = 0.0

    scene_objects_by_scene: dict[str, list[SceneObject]] = field(default_factory=dict)
    scene_animations: dict[str, list[SceneAnimationTrack]] = field(default_factory=dict)
    scene_metadata: dict[str, OutputMetadata] = field(default_factory=dict)
    object_scene_map: dict[str, str] = field(default_factory=dict)
    animation_scene_map: dict[str, str] = field(default_factory=dict)
    animation_count: int = 0

    debug_mode: bool = False
    debug_target_node_id: str | None = None
    execution_log: list[ExecutionLogEntry] = field(default_factory=list)

    @staticmethod
    def output_key(node_id: str, port_id: str) -> str:
        return f"{node_id}.{port_id}"

    def set_node_output(
        self,
        node_id: str,
        port_id: str,
        type: str,
        data: Any,
        metadata: OutputMetadata | None = None,
    ) -> None:
        self.node_outputs[self.output_key(node_id, port_id)] = NodeOutput(
            node_id=node_id,
            port_id=port_id,
            type=type,
            data=data,
            metadata=metadata or EMPTY_METADATA,
        )

    def get_node_output(self, node_id: str, port_id: str) -> NodeOutput | None:
        return self.node_outputs.get(self.output_key(node_id, port_id))

    def get_connected_inputs(self, node_id: str, port_id: str) -> list[NodeOutput]:
        """Resolve every edge targeting ``node_id.port_id`` to its stored output."""
        inputs = []
        for edge in self.graph.get_incoming_edges(node_id, port_id):
            output = self.get_node_output(edge.source, edge.source_handle)
            if output is not None:
                inputs.append(output)
        return inputs

    def collect_objects(
        self, node_id: str, port_id: str = "input",
    ) -> tuple[list[SceneObject], OutputMetadata]:
        """Concatenate the object streams on a port and merge their metadata."""
        inputs = self.get_connected_inputs(node_id, port_id)
        objects: list[SceneObject] = []
        for inp in inputs:
            objects.extend(as_objects(inp.data))
        return objects, merge_metadata(inp.metadata for inp in inputs)

    def produced_object_ids(self) -> set[str]:
        ids: set[str] = set()
        for output in self.node_outputs.values():
            ids.update(obj.id for obj in as_objects(output.data))
        return ids

    def add_to_scene(
        self,
        scene_id: str,
        objects: list[SceneObject],
        animations: list[SceneAnimationTrack],
        metadata: OutputMetadata,
    ) -> None:
        if self.animation_count + len(animations) > self.max_animations:
            raise AnimationLimitError(self.max_animations)
        self.animation_count += len(animations)
        self.scene_objects_by_scene.setdefault(scene_id, []).extend(objects)
        self.scene_animations.setdefault(scene_id, []).extend(animations)
        previous = self.scene_metadata.get(scene_id)
        self.scene_metadata[scene_id] = (
            merge_metadata([previous, metadata]) if previous else metadata
        )
        for obj in objects:
            self.object_scene_map[obj.id] = scene_id
        for anim in animations:
            self.animation_scene_map[anim.id] = scene_id

    def log(self, node_id: str, action: str, **data: Any) -> None:
        if self.debug_mode:
            self.execution_log.append(
                ExecutionLogEntry(node_id=node_id, timestamp=time.time(), action=action, data=data)
            )


def as_objects(data: Any) -> list[SceneObject]:
    if isinstance(data, SceneObject):
        return [data]
    if isinstance(data, list):
        return [d for d in data if isinstance(d, SceneObject)]
    return []
