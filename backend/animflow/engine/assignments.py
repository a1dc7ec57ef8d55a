"""Per-object assignment layering and track overrides."""
from typing import Any, Iterable, Mapping

from ..models.scene import AnimationTrack, ObjectAssignment, TrackOverride

TRACK_SCALARS = ("start_time", "duration", "easing")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def flatten(values: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """``{"position": {"x": 1}}`` -> ``{"position.x": 1}``."""
    flat: dict[str, Any] = {}
    for key, value in values.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, f"{path}."))
        else:
            flat[path] = value
    return flat


def set_path(values: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``values`` with the dotted ``path`` set."""
    head, _, rest = path.partition(".")
    result = dict(values)
    if not rest:
        result[head] = value
    else:
        child = result.get(head)
        result[head] = set_path(child if isinstance(child, Mapping) else {}, rest, value)
    return result


def drop_paths(values: Mapping[str, Any], paths: Iterable[str]) -> dict[str, Any]:
    """Return a copy of ``values`` without the given dotted paths."""
    result = dict(values)
    for path in paths:
        head, _, rest = path.partition(".")
        if head not in result:
            continue
        if not rest:
            del result[head]
        elif isinstance(result[head], Mapping):
            result[head] = drop_paths(result[head], [rest])
    return result


def _track_key(track: TrackOverride) -> str:
    if track.track_id:
        return f"id:{track.track_id}"
    return f"type:{track.type}"


def merge_track_overrides(base: TrackOverride, override: TrackOverride) -> TrackOverride:
    update = {
        name: getattr(override, name)
        for name in ("track_id", "type", *TRACK_SCALARS)
        if getattr(override, name) is not None
    }
    update["properties"] = deep_merge(base.properties, override.properties)
    return base.model_copy(update=update)


def merge_object_assignments(
    base: Mapping[str, ObjectAssignment],
    overrides: Mapping[str, ObjectAssignment],
) -> dict[str, ObjectAssignment]:
    """Layer ``overrides`` on top of ``base`` field by field.

    Initial values merge recursively. Track overrides pair up by track id, or
    by track type when no id is given.
    """
    merged = dict(base)
    for object_id, override in overrides.items():
        current = merged.get(object_id)
        if current is None:
            merged[object_id] = override
            continue
        tracks = {_track_key(t): t for t in current.tracks}
        for track in override.tracks:
            key = _track_key(track)
            tracks[key] = merge_track_overrides(tracks[key], track) if key in tracks else track
        merged[object_id] = ObjectAssignment(
            initial=deep_merge(current.initial, override.initial),
            tracks=tuple(tracks.values()),
        )
    return merged


def find_track_override(
    track: AnimationTrack, overrides: Iterable[TrackOverride],
) -> TrackOverride | None:
    overrides = list(overrides)
    for override in overrides:
        if override.track_id == track.id:
            return override
    for override in overrides:
        if not override.track_id and override.type == track.type:
            return override
    return None


def apply_track_override(
    track: AnimationTrack,
    override: TrackOverride | None,
    masked: Iterable[str] = (),
) -> AnimationTrack:
    """Apply a manual per-object override, skipping ``masked`` field paths."""
    if override is None:
        return track
    masked = set(masked)
    update: dict[str, Any] = {}
    for name in TRACK_SCALARS:
        value = getattr(override, name)
        if value is not None and name not in masked:
            update[name] = value
    properties = drop_paths(override.properties, masked)
    update["properties"] = deep_merge(track.properties, properties)
    return track.model_copy(update=update)


def track_binding_paths(track: AnimationTrack, keys: Iterable[str]) -> dict[str, str]:
    """Map binding keys that address ``track`` to their field path.

    ``"move.to.x"`` addresses every move track; ``"track.<id>.to.x"``
    addresses a single track. Track-specific keys are listed last so they
    win over type-wide ones.
    """
    by_type: dict[str, str] = {}
    by_id: dict[str, str] = {}
    id_prefix = f"track.{track.id}."
    type_prefix = f"{track.type}."
    for key in keys:
        if key.startswith(id_prefix):
            by_id[key] = key[len(id_prefix):]
        elif key.startswith(type_prefix):
            by_type[key] = key[len(type_prefix):]
    return {**by_type, **by_id}


def apply_track_bindings(track: AnimationTrack, values: Mapping[str, Any]) -> AnimationTrack:
    """Write resolved binding values into the fields they address."""
    paths = track_binding_paths(track, values)
    if not paths:
        return track
    update: dict[str, Any] = {}
    properties = track.properties
    for key, path in paths.items():
        if path == "easing":
            update[path] = str(values[key])
        elif path in TRACK_SCALARS:
            update[path] = float(values[key])
        else:
            properties = set_path(properties, path, values[key])
    update["properties"] = properties
    return track.model_copy(update=update)
