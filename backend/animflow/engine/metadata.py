"""Per-output metadata travelling alongside object streams.

Metadata values are immutable; every transformation returns a new instance.
Multi-input nodes combine their inputs with :func:`merge_metadata`, where
later items take precedence over earlier ones.
"""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..models.scene import ObjectAssignment, SceneAnimationTrack
from .assignments import merge_object_assignments

# object id -> field path -> batch key -> value
BatchOverrides = Mapping[str, Mapping[str, Mapping[str, Any]]]


def _frozen(value: Mapping | None) -> Mapping:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class OutputMetadata:
    logic_type: str | None = None
    cursors: Mapping[str, float] = field(default_factory=dict)
    per_object_animations: Mapping[str, tuple[SceneAnimationTrack, ...]] = field(
        default_factory=dict
    )
    per_object_assignments: Mapping[str, ObjectAssignment] = field(default_factory=dict)
    batch_overrides: BatchOverrides = field(default_factory=dict)
    bound_fields: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "cursors", _frozen(self.cursors))
        object.__setattr__(self, "per_object_animations", _frozen({
            k: tuple(v) for k, v in self.per_object_animations.items()
        }))
        object.__setattr__(
            self, "per_object_assignments", _frozen(self.per_object_assignments)
        )
        object.__setattr__(self, "batch_overrides", _frozen({
            oid: _frozen({f: _frozen(by_key) for f, by_key in fields.items()})
            for oid, fields in self.batch_overrides.items()
        }))
        object.__setattr__(self, "bound_fields", _frozen({
            k: frozenset(v) for k, v in self.bound_fields.items()
        }))

    def evolve(self, **changes: Any) -> "OutputMetadata":
        return replace(self, **changes)

    def restrict(self, object_ids: Iterable[str]) -> "OutputMetadata":
        """Keep only the entries that belong to ``object_ids``."""
        keep = set(object_ids)

        def pick(mapping: Mapping) -> dict:
            return {k: v for k, v in mapping.items() if k in keep}

        return replace(
            self,
            cursors=pick(self.cursors),
            per_object_animations=pick(self.per_object_animations),
            per_object_assignments=pick(self.per_object_assignments),
            batch_overrides=pick(self.batch_overrides),
            bound_fields=pick(self.bound_fields),
        )

    def copy_object(self, source_id: str, target_id: str) -> "OutputMetadata":
        """Give ``target_id`` the entries of ``source_id``.

        Copied animations are re-keyed to the new object so that their ids
        stay unique.
        """
        cursors = dict(self.cursors)
        animations = dict(self.per_object_animations)
        assignments = dict(self.per_object_assignments)
        overrides = dict(self.batch_overrides)
        bound = dict(self.bound_fields)
        if source_id in cursors:
            cursors[target_id] = cursors[source_id]
        if source_id in animations:
            animations[target_id] = tuple(
                track.model_copy(update={
                    "id": track.id.replace(source_id, target_id, 1),
                    "object_id": target_id,
                })
                for track in animations[source_id]
            )
        if source_id in assignments:
            assignments[target_id] = assignments[source_id]
        if source_id in overrides:
            overrides[target_id] = overrides[source_id]
        if source_id in bound:
            bound[target_id] = bound[source_id]
        return replace(
            self,
            cursors=cursors,
            per_object_animations=animations,
            per_object_assignments=assignments,
            batch_overrides=overrides,
            bound_fields=bound,
        )


EMPTY_METADATA = OutputMetadata()


def merge_cursors(*maps: Mapping[str, float]) -> dict[str, float]:
    """Combine cursor maps keeping the latest free time per object."""
    merged: dict[str, float] = {}
    for cursor_map in maps:
        for object_id, t in cursor_map.items():
            merged[object_id] = max(merged.get(object_id, t), t)
    return merged


def merge_animations(
    *maps: Mapping[str, tuple[SceneAnimationTrack, ...]],
) -> dict[str, tuple[SceneAnimationTrack, ...]]:
    """Concatenate per-object animations, dropping repeated track ids."""
    merged: dict[str, list[SceneAnimationTrack]] = {}
    seen: dict[str, set[str]] = {}
    for anim_map in maps:
        for object_id, tracks in anim_map.items():
            bucket = merged.setdefault(object_id, [])
            ids = seen.setdefault(object_id, set())
            for track in tracks:
                if track.id not in ids:
                    ids.add(track.id)
                    bucket.append(track)
    return {k: tuple(v) for k, v in merged.items()}


def merge_batch_overrides(*layers: BatchOverrides) -> dict[str, dict[str, dict[str, Any]]]:
    """Merge batch overrides per object and field; later layers win per key."""
    merged: dict[str, dict[str, dict[str, Any]]] = {}
    for layer in layers:
        for object_id, fields in layer.items():
            target = merged.setdefault(object_id, {})
            for field_path, by_key in fields.items():
                target.setdefault(field_path, {}).update(by_key)
    return merged


def merge_bound_fields(*maps: Mapping[str, Iterable[str]]) -> dict[str, frozenset[str]]:
    merged: dict[str, set[str]] = {}
    for bound in maps:
        for object_id, keys in bound.items():
            merged.setdefault(object_id, set()).update(keys)
    return {k: frozenset(v) for k, v in merged.items()}


def merge_metadata(items: Iterable[OutputMetadata]) -> OutputMetadata:
    items = list(items)
    if not items:
        return EMPTY_METADATA
    if len(items) == 1:
        return items[0]

    assignments: dict[str, ObjectAssignment] = {}
    for item in items:
        assignments = merge_object_assignments(assignments, item.per_object_assignments)

    logic_types = {i.logic_type for i in items}
    return OutputMetadata(
        logic_type=logic_types.pop() if len(logic_types) == 1 else None,
        cursors=merge_cursors(*(i.cursors for i in items)),
        per_object_animations=merge_animations(*(i.per_object_animations for i in items)),
        per_object_assignments=assignments,
        batch_overrides=merge_batch_overrides(*(i.batch_overrides for i in items)),
        bound_fields=merge_bound_fields(*(i.bound_fields for i in items)),
    )
