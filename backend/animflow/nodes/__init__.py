"""Auto-discover all node modules on import."""
from ..models.node_data import NODE_DATA_MODELS
from .registry import NodeRegistry

NodeRegistry.discover("animflow.nodes")

# Every kind in the node data union must have an executor
_missing = NodeRegistry.missing(NODE_DATA_MODELS)
if _missing:
    raise RuntimeError(f"No executor registered for node kinds: {_missing}")
