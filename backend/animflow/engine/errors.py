"""Domain error taxonomy for flow validation and execution.

Every error carries a stable ``code`` and a ``details`` dict holding the node
and edge ids (plus display names) the editor needs to highlight the problem.
"""
from typing import Any


class DomainError(Exception):
    code = "ERR_DOMAIN"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        is_user_error: bool = True,
    ):
        self.message = message
        self.details = details or {}
        self.is_user_error = is_user_error
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "is_user_error": self.is_user_error,
        }


# --- validation ------------------------------------------------------------

class SceneRequiredError(DomainError):
    code = "ERR_SCENE_REQUIRED"

    def __init__(self):
        super().__init__(
            "A Scene node is required. Add a Scene node to define the output."
        )


class TooManyScenesError(DomainError):
    code = "ERR_TOO_MANY_SCENES"

    def __init__(self, count: int, max_scenes: int):
        super().__init__(
            f"Too many Scene nodes ({count}). At most {max_scenes} are allowed.",
            {"count": count, "max_scenes": max_scenes},
        )


class InvalidConnectionError(DomainError):
    code = "ERR_INVALID_CONNECTION"

    def __init__(
        self,
        message: str,
        *,
        edge_id: str | None = None,
        source_node_id: str | None = None,
        target_node_id: str | None = None,
        node_id: str | None = None,
        node_name: str | None = None,
        **extra: Any,
    ):
        details = {
            "edge_id": edge_id,
            "source_node_id": source_node_id,
            "target_node_id": target_node_id,
            "node_id": node_id,
            "node_name": node_name,
        }
        details = {k: v for k, v in details.items() if v is not None}
        details.update(extra)
        super().__init__(message, details)


class UnknownNodeKindError(InvalidConnectionError):
    code = "ERR_UNKNOWN_NODE_TYPE"

    def __init__(self, kind: str, node_id: str | None = None):
        self.kind = kind
        super().__init__(
            f"Unknown node type: {kind}", node_id=node_id, kind=kind,
        )


class MultipleBatchNodesInPathError(InvalidConnectionError):
    code = "ERR_BATCH_MULTIPLE_IN_PATH"

    def __init__(self, batch_node_names: list[str], path_description: str):
        super().__init__(
            f"Multiple Batch nodes detected along path: {path_description}. "
            "Only one Batch node per path to a scene is allowed.",
            batch_node_names=batch_node_names,
            path_description=path_description,
        )


class MissingInsertConnectionError(DomainError):
    code = "ERR_MISSING_INSERT_CONNECTION"

    def __init__(self, node_name: str, node_id: str):
        super().__init__(
            f"Geometry node {node_name} must connect to an Insert node "
            "to appear in the scene.",
            {"node_id": node_id, "node_name": node_name},
        )


class MultipleInsertNodesInSeriesError(DomainError):
    code = "ERR_MULTIPLE_INSERT_NODES_IN_SERIES"

    def __init__(self, insert_node_names: list[str], path_description: str):
        self.insert_node_names = insert_node_names
        super().__init__(
            "Multiple Insert nodes detected in series along path: "
            f"{path_description}. Only one Insert node per path is allowed.",
            {
                "insert_node_names": insert_node_names,
                "path_description": path_description,
            },
        )


class CircularDependencyError(DomainError):
    code = "ERR_CIRCULAR_DEPENDENCY"

    def __init__(self, node_ids: list[str] | None = None):
        super().__init__(
            "Circular dependency detected in flow graph",
            {"node_ids": node_ids or []},
        )


# --- execution -------------------------------------------------------------

class ExecutionError(DomainError):
    code = "ERR_EXECUTION"

    def __init__(
        self,
        message: str,
        node_id: str | None = None,
        node_name: str | None = None,
        code: str | None = None,
        **extra: Any,
    ):
        if code is not None:
            self.code = code
        details = {"node_id": node_id, "node_name": node_name, **extra}
        super().__init__(
            message, {k: v for k, v in details.items() if v is not None}
        )


class DuplicateObjectIdsError(ExecutionError):
    code = "ERR_DUPLICATE_OBJECT_IDS"

    def __init__(self, node_name: str, node_id: str, duplicate_ids: list[str]):
        self.duplicate_ids = duplicate_ids
        super().__init__(
            f"Node {node_name} receives duplicate object IDs "
            f"({', '.join(duplicate_ids)}). "
            "Use a Merge node to combine identical objects.",
            node_id=node_id,
            node_name=node_name,
            duplicate_ids=duplicate_ids,
        )


class LogicError(ExecutionError):
    code = "ERR_LOGIC"


class MultipleResultValuesError(ExecutionError):
    code = "ERR_MULTIPLE_RESULT_VALUES"

    def __init__(self, node_name: str, node_id: str, count: int):
        super().__init__(
            f"Result node {node_name} received {count} values; "
            "connect exactly one input.",
            node_id=node_id,
            node_name=node_name,
            count=count,
        )


class BatchKeyError(ExecutionError):
    code = "ERR_BATCH"


class DuplicateNodeError(ExecutionError):
    code = "ERR_DUPLICATE_LIMIT"


class AnimationLimitError(ExecutionError):
    code = "ERR_TOO_MANY_ANIMATIONS"

    def __init__(self, limit: int):
        super().__init__(
            f"Execution produced more than {limit} animations",
            limit=limit,
        )


class DebugTargetNotFoundError(ExecutionError):
    code = "ERR_DEBUG_TARGET_NOT_FOUND"

    def __init__(self, node_id: str):
        super().__init__(
            f"Debug target node {node_id} is not part of the execution order",
            node_id=node_id,
        )
        self.is_user_error = False


class AssetNotFoundError(Exception):
    """Raised by asset stores; executors degrade it to a placeholder."""
