"""REST API routes."""
import logging

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from ..engine.assembler import build_scenes
from ..engine.errors import DomainError
from ..engine.executor import execute_flow, execute_flow_debug
from ..engine.graph import Edge, Graph, Node
from ..engine.validator import validate_graph
from ..models.schemas import (
    DebugExecuteRequest, DebugExecuteResponse, ExecuteResponse,
    GraphSchema, LogEntrySchema, ValidateResponse,
)
from ..nodes.registry import NodeRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _schema_to_graph(schema: GraphSchema) -> Graph:
    try:
        nodes = {
            n.id: Node(id=n.id, kind=n.kind, data=n.data, position=n.position)
            for n in schema.nodes
        }
        edges = [
            Edge(
                id=e.id, source=e.source, target=e.target,
                source_handle=e.source_handle, target_handle=e.target_handle,
                kind=e.kind,
            )
            for e in schema.edges
        ]
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=jsonable_encoder(e.errors())) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return Graph(nodes=nodes, edges=edges)


def _domain_http_error(err: DomainError) -> HTTPException:
    if not err.is_user_error:
        logger.error("Flow execution failed: %s", err.message)
    return HTTPException(
        status_code=422 if err.is_user_error else 500, detail=err.to_dict(),
    )


@router.get("/nodes")
async def list_nodes():
    """Return all registered node definitions."""
    defs = NodeRegistry.all_definitions()
    return {
        name: {
            "node_kind": defn.node_kind,
            "display_name": defn.display_name,
            "category": defn.category,
            "description": defn.description,
            "inputs": {
                k: {"dtype": v.dtype.value, "label": v.label}
                for k, v in defn.inputs.items()
            },
            "outputs": [
                {"dtype": o.dtype.value, "name": o.name} for o in defn.outputs
            ],
            "defaults": jsonable_encoder(defn.defaults),
        }
        for name, defn in defs.items()
    }


@router.post("/validate", response_model=ValidateResponse)
async def validate(schema: GraphSchema):
    try:
        graph = _schema_to_graph(schema)
        validate_graph(graph)
    except DomainError as e:
        return ValidateResponse(valid=False, error=e.to_dict())
    return ValidateResponse(valid=True)


@router.post("/execute", response_model=ExecuteResponse)
async def execute(schema: GraphSchema):
    try:
        graph = _schema_to_graph(schema)
        context = await execute_flow(graph)
    except DomainError as e:
        raise _domain_http_error(e) from e
    return ExecuteResponse(
        scenes=build_scenes(context),
        variables=jsonable_encoder(context.variables),
        skipped_nodes=sorted(context.skipped_nodes),
    )


@router.post("/execute/debug", response_model=DebugExecuteResponse)
async def execute_debug(request: DebugExecuteRequest):
    try:
        graph = _schema_to_graph(request.graph)
        context = await execute_flow_debug(graph, request.target_node_id)
    except DomainError as e:
        raise _domain_http_error(e) from e
    return DebugExecuteResponse(
        target_node_id=request.target_node_id,
        execution_log=[
            LogEntrySchema(
                node_id=entry.node_id, timestamp=entry.timestamp,
                action=entry.action, data=entry.data,
            )
            for entry in context.execution_log
        ],
        outputs={
            key: jsonable_encoder(out.data) for key, out in context.node_outputs.items()
        },
    )
