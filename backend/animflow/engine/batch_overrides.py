"""Per-batch-key field overrides, resolved when a scene is partitioned."""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..config import settings
from ..models.scene import SceneObject

logger = logging.getLogger(__name__)

DEFAULT_OBJECT_ID = "__default_object__"
DEFAULT_KEY = "__default__"


@dataclass(frozen=True)
class BatchField:
    value_type: str          # "number" or "string"
    attribute: str           # SceneObject attribute
    key: str | None = None   # key inside a dict attribute


BATCH_FIELDS: dict[str, BatchField] = {
    "canvas.position.x": BatchField("number", "initial_position", "x"),
    "canvas.position.y": BatchField("number", "initial_position", "y"),
    "canvas.scale.x": BatchField("number", "initial_scale", "x"),
    "canvas.scale.y": BatchField("number", "initial_scale", "y"),
    "canvas.rotation": BatchField("number", "initial_rotation"),
    "canvas.opacity": BatchField("number", "initial_opacity"),
    "canvas.fill_color": BatchField("string", "properties", "color"),
    "canvas.stroke_color": BatchField("string", "properties", "stroke_color"),
    "canvas.stroke_width": BatchField("number", "properties", "stroke_width"),
    "typography.content": BatchField("string", "properties", "content"),
    "media.image_asset_id": BatchField("string", "properties", "image_asset_id"),
}


def local_key(field_path: str) -> str:
    """``"canvas.position.x"`` -> ``"position.x"``, the key bindings use."""
    return field_path.split(".", 1)[1]


def _clean_keys(by_key: Mapping[str, Any] | None) -> dict[str, Any]:
    """Trim batch keys and drop blank ones."""
    return {k.strip(): v for k, v in (by_key or {}).items() if k and k.strip()}


def expand_batch_overrides(
    by_field: Mapping[str, Mapping[str, Mapping[str, Any]]],
    objects: Iterable[SceneObject],
) -> dict[str, dict[str, dict[str, Any]]]:
    """Turn a node's ``field -> object -> key -> value`` table into per-object form.

    The ``__default_object__`` entry is broadcast to every batched object;
    an object's own entry overrides it key by key.
    """
    objects = list(objects)
    expanded: dict[str, dict[str, dict[str, Any]]] = {}
    for field_path, per_object in by_field.items():
        if field_path not in BATCH_FIELDS:
            logger.warning("Ignoring batch overrides for unknown field %s", field_path)
            continue
        defaults = _clean_keys(per_object.get(DEFAULT_OBJECT_ID))
        for obj in objects:
            explicit = _clean_keys(per_object.get(obj.id))
            if obj.is_batched and defaults:
                values = {**defaults, **explicit}
            elif explicit:
                values = explicit
            else:
                continue
            expanded.setdefault(obj.id, {})[field_path] = values
    return expanded


def coerce_value(field_path: str, value: Any) -> Any:
    spec = BATCH_FIELDS[field_path]
    if spec.value_type == "number":
        if isinstance(value, bool):
            raise ValueError(f"{field_path} expects a number, got {value!r}")
        return float(value)
    if isinstance(value, (dict, list)):
        raise ValueError(f"{field_path} expects a string, got {value!r}")
    return str(value)


def pick_batch_value(by_key: Mapping[str, Any], batch_key: str | None, current: Any) -> Any:
    if batch_key is None:
        return current
    if batch_key in by_key:
        return by_key[batch_key]
    if DEFAULT_KEY in by_key:
        return by_key[DEFAULT_KEY]
    return current


def _read(obj: SceneObject, spec: BatchField) -> Any:
    value = getattr(obj, spec.attribute)
    return value.get(spec.key) if spec.key else value


def _write(obj: SceneObject, spec: BatchField, value: Any) -> SceneObject:
    if spec.key is None:
        return obj.model_copy(update={spec.attribute: value})
    container = dict(getattr(obj, spec.attribute))
    container[spec.key] = value
    return obj.model_copy(update={spec.attribute: container})


def resolve_object_for_batch(
    obj: SceneObject,
    batch_key: str | None,
    overrides: Mapping[str, Mapping[str, Any]],
    bound_fields: Iterable[str] = (),
) -> SceneObject:
    """Apply the overrides registered for ``batch_key`` to one object.

    Unbatched objects and the unpartitioned case (``batch_key`` None) pass
    through unchanged, as do fields controlled by a binding.
    """
    if batch_key is None or not obj.is_batched or not overrides:
        return obj
    bound = set(bound_fields)
    for field_path, by_key in overrides.items():
        spec = BATCH_FIELDS.get(field_path)
        if spec is None or local_key(field_path) in bound:
            continue
        if len(by_key) > settings.batch_keys_soft_cap:
            logger.warning(
                "Object %s has %d batch keys for %s (soft cap %d)",
                obj.id, len(by_key), field_path, settings.batch_keys_soft_cap,
            )
        current = _read(obj, spec)
        value = pick_batch_value(by_key, batch_key, current)
        if value is current:
            continue
        try:
            value = coerce_value(field_path, value)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid batch override %r for %s on %s; keeping %r",
                value, field_path, obj.id, current,
            )
            continue
        obj = _write(obj, spec, value)
    return obj
