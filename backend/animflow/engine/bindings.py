"""Variable bindings and the per-field override precedence."""
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..models.scene import VariableBinding
from .context import ExecutionContext

_MISSING = object()


def read_result_value(context: ExecutionContext, result_node_id: str) -> Any:
    """Look up a bound node's resolved value, or None if it produced nothing."""
    for port in ("output", "result"):
        output = context.get_node_output(result_node_id, port)
        if output is not None:
            return output.data
    return None


def bound_keys(bindings: Mapping[str, VariableBinding]) -> frozenset[str]:
    return frozenset(k for k, b in bindings.items() if b.bound_result_node_id)


def resolve_bindings(
    context: ExecutionContext, bindings: Mapping[str, VariableBinding],
) -> dict[str, Any]:
    """Resolve each bound key; keys whose target produced nothing are omitted."""
    values: dict[str, Any] = {}
    for key, binding in bindings.items():
        if not binding.bound_result_node_id:
            continue
        value = read_result_value(context, binding.bound_result_node_id)
        if value is not None:
            values[key] = value
    return values


@dataclass(frozen=True)
class OverrideLayers:
    """Everything that can override a field for one object.

    Highest precedence first: per-object binding, per-object manual value
    (masked when a per-object binding is declared for the same key), global
    binding, then the node default.
    """
    object_bound: Mapping[str, Any] = field(default_factory=dict)
    object_manual: Mapping[str, Any] = field(default_factory=dict)
    global_bound: Mapping[str, Any] = field(default_factory=dict)
    masked: frozenset[str] = frozenset()
    # keys that any binding controls for this object
    bound_fields: frozenset[str] = frozenset()

    def resolve(self, key: str, default: Any) -> Any:
        value = self.object_bound.get(key, _MISSING)
        if value is not _MISSING:
            return value
        if key not in self.masked:
            value = self.object_manual.get(key, _MISSING)
            if value is not _MISSING:
                return value
        return self.global_bound.get(key, default)


def layers_for_object(
    context: ExecutionContext,
    object_id: str,
    global_bindings: Mapping[str, VariableBinding],
    object_bindings: Mapping[str, Mapping[str, VariableBinding]],
    manual: Mapping[str, Any] | None = None,
    global_values: Mapping[str, Any] | None = None,
) -> OverrideLayers:
    """Build the override layers for ``object_id``.

    ``global_values`` lets callers resolve node-level bindings once and reuse
    them across objects.
    """
    per_object = object_bindings.get(object_id, {})
    object_declared = bound_keys(per_object)
    if global_values is None:
        global_values = resolve_bindings(context, global_bindings)
    return OverrideLayers(
        object_bound=resolve_bindings(context, per_object),
        object_manual=dict(manual or {}),
        global_bound=dict(global_values),
        masked=object_declared,
        bound_fields=object_declared | bound_keys(global_bindings),
    )
