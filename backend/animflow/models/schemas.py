"""Pydantic schemas for API request/response models."""
from typing import Any
from pydantic import BaseModel

from .scene import SceneDescription


class EdgeSchema(BaseModel):
    id: str
    source: str
    target: str
    source_handle: str = "output"
    target_handle: str = "input"
    kind: str = "data"


class NodeSchema(BaseModel):
    id: str
    kind: str
    data: dict[str, Any] = {}
    position: dict[str, float] = {}


class GraphSchema(BaseModel):
    nodes: list[NodeSchema]
    edges: list[EdgeSchema]
    name: str = ""


class ValidateResponse(BaseModel):
    valid: bool
    error: dict[str, Any] | None = None


class ExecuteResponse(BaseModel):
    scenes: list[SceneDescription]
    variables: dict[str, Any] = {}
    skipped_nodes: list[str] = []


class DebugExecuteRequest(BaseModel):
    graph: GraphSchema
    target_node_id: str


class LogEntrySchema(BaseModel):
    node_id: str
    timestamp: float
    action: str
    data: dict[str, Any] = {}


class DebugExecuteResponse(BaseModel):
    target_node_id: str
    execution_log: list[LogEntrySchema]
    outputs: dict[str, Any]
