"""Timeline assembly and scene partitioning."""
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..models.node_data import FrameData, SceneData
from ..models.scene import (
    AnimationTrack, SceneAnimationTrack, SceneDescription, SceneObject,
)
from .batch_overrides import resolve_object_for_batch
from .context import ExecutionContext
from .errors import ExecutionError
from .metadata import EMPTY_METADATA, OutputMetadata

SCENE_TAIL_SECONDS = 0.5
MIN_SCENE_DURATION = 1.0


def timeline_baseline(obj: SceneObject, cursors: Mapping[str, float]) -> float:
    """Earliest start for new tracks: after the object appears and after prior tracks."""
    return max(obj.appearance_time or 0.0, cursors.get(obj.id, 0.0))


def convert_tracks_to_scene_animations(
    tracks: Iterable[AnimationTrack], object_id: str, baseline: float,
) -> list[SceneAnimationTrack]:
    scene_tracks = []
    for track in tracks:
        start = baseline + track.start_time
        scene_tracks.append(SceneAnimationTrack(
            id=f"{object_id}::{track.id}::{start:g}",
            object_id=object_id,
            track_id=track.id,
            type=track.type,
            start_time=start,
            duration=track.duration,
            easing=track.easing,
            properties=track.properties,
        ))
    return scene_tracks


def advance_cursor(
    existing: float | None, baseline: float, scene_tracks: Iterable[SceneAnimationTrack],
) -> float:
    """Next free timeline position once ``scene_tracks`` have been placed."""
    ends = [t.end_time for t in scene_tracks]
    cursor = max(ends) if ends else baseline
    return cursor if existing is None else max(existing, cursor)


@dataclass
class ScenePartition:
    scene_id: str
    batch_key: str | None
    objects: list[SceneObject] = field(default_factory=list)
    animations: list[SceneAnimationTrack] = field(default_factory=list)


def _namespaced(value: str, batch_key: str | None) -> str:
    return value if batch_key is None else f"{value}@{batch_key}"


def partition_by_batch_key(
    scene_id: str,
    objects: list[SceneObject],
    animations: list[SceneAnimationTrack],
    metadata: OutputMetadata = EMPTY_METADATA,
) -> list[ScenePartition]:
    """Split a scene into one partition per distinct batch key.

    Without batched objects there is a single partition keyed ``None`` whose
    contents pass through untouched. Otherwise every partition holds the
    unbatched objects plus the batched objects carrying its key, with batch
    overrides resolved for that key and ids suffixed ``@<key>``.
    """
    batched = [o for o in objects if o.is_batched]
    if not batched:
        return [ScenePartition(scene_id, None, list(objects), list(animations))]

    keys = sorted({k.strip() for o in batched for k in o.batch_keys if k.strip()})
    partitions = []
    for key in keys:
        members = [
            o for o in objects
            if not o.is_batched or key in {k.strip() for k in o.batch_keys}
        ]
        member_ids = {o.id for o in members}
        resolved = [
            resolve_object_for_batch(
                o, key,
                metadata.batch_overrides.get(o.id, {}),
                metadata.bound_fields.get(o.id, ()),
            ).model_copy(update={"id": _namespaced(o.id, key)})
            for o in members
        ]
        tracks = [
            a.model_copy(update={
                "id": _namespaced(a.id, key),
                "object_id": _namespaced(a.object_id, key),
            })
            for a in animations if a.object_id in member_ids
        ]
        partitions.append(ScenePartition(scene_id, key, resolved, tracks))
    return partitions


def calculate_scene_duration(
    configured: float | None, animations: Iterable[SceneAnimationTrack],
) -> float:
    if configured:
        return configured
    last_end = max((a.end_time for a in animations), default=0.0)
    return max(last_end + SCENE_TAIL_SECONDS, MIN_SCENE_DURATION)


def build_scenes(context: ExecutionContext) -> list[SceneDescription]:
    """Turn every scene and frame accumulated during a run into descriptions."""
    scenes = []
    for scene_id, objects in context.scene_objects_by_scene.items():
        node = context.graph.nodes[scene_id]
        if not isinstance(node.data, (SceneData, FrameData)):
            raise ExecutionError(
                f"Node {node.name} is not a scene or frame", node.id, node.name,
                kind=node.kind,
            )
        partitions = partition_by_batch_key(
            scene_id,
            objects,
            context.scene_animations.get(scene_id, []),
            context.scene_metadata.get(scene_id, EMPTY_METADATA),
        )
        for part in partitions:
            common = dict(
                id=_namespaced(scene_id, part.batch_key),
                scene_node_id=scene_id,
                name=node.name,
                batch_key=part.batch_key,
                width=node.data.width,
                height=node.data.height,
                background_color=node.data.background_color,
                objects=part.objects,
            )
            if isinstance(node.data, FrameData):
                scenes.append(SceneDescription(
                    output="image", duration=0.0, format=node.data.format, **common,
                ))
            else:
                scenes.append(SceneDescription(
                    output="video",
                    fps=node.data.fps,
                    duration=calculate_scene_duration(node.data.duration, part.animations),
                    animations=part.animations,
                    **common,
                ))
    return scenes
