"""Stream shaping nodes: merge, filter, batch and duplicate."""
from ..config import settings
from ..engine.context import ExecutionContext, as_objects
from ..engine.errors import BatchKeyError, DuplicateNodeError
from ..engine.graph import Node
from ..engine.metadata import OutputMetadata, merge_metadata
from ..models.node_data import BatchData, DuplicateData, FilterData, MergeData
from ..models.scene import SceneObject
from .base import STREAM_IN, STREAM_OUT, BaseNode, InputSpec, OutputSpec, PortType
from .registry import NodeRegistry


class StreamNode(BaseNode):
    CATEGORY = "data"

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        return STREAM_IN

    @classmethod
    def RETURN_TYPES(cls, data=None) -> list[OutputSpec]:
        return STREAM_OUT


@NodeRegistry.register("merge")
class MergeNode(StreamNode):
    """Combines streams. Objects sharing an id collapse; port 1 has priority."""

    DISPLAY_NAME = "Merge"
    DATA_MODEL = MergeData

    @classmethod
    def INPUT_TYPES(cls, data=None) -> dict[str, InputSpec]:
        count = data.input_port_count if isinstance(data, MergeData) else 2
        return {
            f"input{i}": InputSpec(
                PortType.OBJECT_STREAM, "Input 1 (Priority)" if i == 1 else f"Input {i}",
            )
            for i in range(1, count + 1)
        }

    def execute(self, node: Node, context: ExecutionContext) -> None:
        winners: dict[str, SceneObject] = {}
        winner_meta: dict[str, OutputMetadata] = {}
        port_meta: list[OutputMetadata] = []
        for port in self.INPUT_TYPES(node.data):
            for inp in context.get_connected_inputs(node.id, port):
                port_meta.append(inp.metadata)
                for obj in as_objects(inp.data):
                    if obj.id not in winners:
                        winners[obj.id] = obj
                        winner_meta[obj.id] = inp.metadata

        # lower-priority ports first so port 1 wins every merge
        merged = merge_metadata(reversed(port_meta))
        merged = merged.evolve(
            per_object_animations={
                oid: m.per_object_animations[oid]
                for oid, m in winner_meta.items() if oid in m.per_object_animations
            },
            per_object_assignments={
                oid: m.per_object_assignments[oid]
                for oid, m in winner_meta.items() if oid in m.per_object_assignments
            },
        )
        context.set_node_output(
            node.id, "output", PortType.OBJECT_STREAM, list(winners.values()), merged,
        )


@NodeRegistry.register("filter")
class FilterNode(StreamNode):
    """Passes through only the selected object ids."""

    DISPLAY_NAME = "Filter"
    DATA_MODEL = FilterData

    def execute(self, node: Node, context: ExecutionContext) -> None:
        selected = set(node.data.selected_object_ids)
        objects, metadata = context.collect_objects(node.id)
        kept = [o for o in objects if o.id in selected]
        context.set_node_output(
            node.id, "output", PortType.OBJECT_STREAM, kept,
            metadata.restrict(o.id for o in kept),
        )


@NodeRegistry.register("batch")
class BatchNode(StreamNode):
    """Tags objects with the batch keys their scenes are partitioned by."""

    DISPLAY_NAME = "Batch"
    DATA_MODEL = BatchData

    def execute(self, node: Node, context: ExecutionContext) -> None:
        data: BatchData = node.data
        objects, metadata = context.collect_objects(node.id)
        tagged = []
        for obj in objects:
            raw = data.keys_by_object.get(obj.id, data.keys)
            keys = sorted({k.strip() for k in raw if k and k.strip()})
            if not keys:
                raise BatchKeyError(
                    f"Batch node {node.name} has no key for object {obj.id}",
                    node.id, node.name, code="ERR_BATCH_EMPTY_KEY", object_id=obj.id,
                )
            if obj.is_batched and sorted(k.strip() for k in obj.batch_keys) != keys:
                raise BatchKeyError(
                    f"Object {obj.id} is already batched with different keys",
                    node.id, node.name, code="ERR_BATCH_DOUBLE_TAG", object_id=obj.id,
                )
            tagged.append(obj.model_copy(update={"batch": True, "batch_keys": keys}))
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, tagged, metadata)


@NodeRegistry.register("duplicate")
class DuplicateNode(StreamNode):
    """Emits each object followed by ``count - 1`` copies."""

    DISPLAY_NAME = "Duplicate"
    DATA_MODEL = DuplicateData

    @staticmethod
    def _unique_id(original_id: str, index: int, taken: set[str]) -> str:
        base = f"{original_id}_dup_{index:03d}"
        candidate, suffix = base, 0
        while candidate in taken:
            suffix += 1
            candidate = f"{base}_{suffix}"
        return candidate

    def execute(self, node: Node, context: ExecutionContext) -> None:
        count = min(max(node.data.count, 1), settings.duplicate_max_count)
        objects, metadata = context.collect_objects(node.id)
        total = len(objects) * count
        if total > settings.duplicate_max_total:
            raise DuplicateNodeError(
                f"Duplicate node {node.name} would create {total} objects, "
                f"exceeding the limit of {settings.duplicate_max_total}",
                node.id, node.name, total=total,
            )

        taken = context.produced_object_ids()
        out: list[SceneObject] = []
        for obj in objects:
            out.append(obj)
            for i in range(1, count):
                dup_id = self._unique_id(obj.id, i, taken)
                taken.add(dup_id)
                out.append(obj.model_copy(update={"id": dup_id}, deep=True))
                metadata = metadata.copy_object(obj.id, dup_id)
        context.set_node_output(node.id, "output", PortType.OBJECT_STREAM, out, metadata)
