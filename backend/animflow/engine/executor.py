"""Execution engine: topological sort and sequential node dispatch."""
import asyncio
import inspect
import logging
from collections import Counter, deque
from typing import Any, Callable

from ..config import settings
from ..nodes.registry import NodeRegistry
from .assets import LocalAssetStore
from .context import AssetResolver, ExecutionContext, as_objects
from .errors import (
    CircularDependencyError, DebugTargetNotFoundError, DuplicateObjectIdsError,
)
from .graph import Graph, Node
from .validator import validate_graph

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]

BRANCH_PORTS = {"true_path", "false_path"}


def topological_sort(graph: Graph) -> list[str]:
    """Kahn's algorithm over data edges, returning node IDs in execution order."""
    in_degree: dict[str, int] = {nid: 0 for nid in graph.nodes}
    # One adjacency entry per edge, not per unique successor
    adj: dict[str, list[str]] = {nid: [] for nid in graph.nodes}
    for edge in graph.data_edges:
        if edge.target in in_degree:
            in_degree[edge.target] += 1
        if edge.source in adj:
            adj[edge.source].append(edge.target)

    queue = deque(nid for nid, deg in in_degree.items() if deg == 0)
    order: list[str] = []
    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        for succ in adj[node_id]:
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                queue.append(succ)

    if len(order) != len(graph.nodes):
        placed = set(order)
        raise CircularDependencyError(sorted(n for n in graph.nodes if n not in placed))
    return order


def should_skip(node: Node, context: ExecutionContext) -> bool:
    """True when some connected input can never receive a value this run.

    That is the case when every source of a port was itself skipped, or when
    every source is an If/Else branch that was not taken.
    """
    graph = context.graph
    for handle in {e.target_handle for e in graph.get_incoming_edges(node.id)}:
        edges = graph.get_incoming_edges(node.id, handle)
        if all(e.source not in context.executed_nodes for e in edges):
            return True
        from_branches = all(
            graph.nodes[e.source].kind == "if_else" and e.source_handle in BRANCH_PORTS
            for e in edges
        )
        if from_branches and all(
            context.get_node_output(e.source, e.source_handle) is None for e in edges
        ):
            return True
    return False


def check_duplicate_object_ids(node: Node, context: ExecutionContext) -> None:
    """Objects reaching a non-merge node must have distinct ids."""
    if node.kind == "merge":
        return
    counts: Counter[str] = Counter()
    for handle in {e.target_handle for e in context.graph.get_incoming_edges(node.id)}:
        for inp in context.get_connected_inputs(node.id, handle):
            counts.update(obj.id for obj in as_objects(inp.data))
    duplicates = sorted(oid for oid, n in counts.items() if n > 1)
    if duplicates:
        raise DuplicateObjectIdsError(node.name, node.id, duplicates)


async def _run(
    context: ExecutionContext,
    order: list[str],
    progress_callback: ProgressCallback | None = None,
) -> None:
    for node_id in order:
        if node_id in context.executed_nodes:
            continue
        node = context.graph.nodes[node_id]
        if should_skip(node, context):
            logger.debug("Skipping %s (%s): inputs not reachable this run", node_id, node.kind)
            context.skipped_nodes.add(node_id)
            context.log(node_id, "skip", kind=node.kind)
            continue

        check_duplicate_object_ids(node, context)
        executor = NodeRegistry.create(node.kind)
        result = executor.execute(node, context)
        if inspect.isawaitable(result):
            await result
        context.executed_nodes.add(node_id)

        context.log(
            node_id, "execute",
            kind=node.kind,
            outputs=[
                out.port_id for out in context.node_outputs.values() if out.node_id == node_id
            ],
        )
        if progress_callback:
            progress_callback({
                "type": "node_complete",
                "node_id": node_id,
                "node_kind": node.kind,
            })


def _new_context(graph: Graph, asset_store: AssetResolver | None) -> ExecutionContext:
    return ExecutionContext(
        graph=graph,
        asset_store=asset_store or LocalAssetStore(settings.asset_dir),
        max_animations=settings.max_animations_per_execution,
    )


async def execute_flow(
    graph: Graph,
    asset_store: AssetResolver | None = None,
    progress_callback: ProgressCallback | None = None,
    max_scenes: int | None = None,
) -> ExecutionContext:
    """Validate, schedule and execute every node; return the populated context."""
    validate_graph(graph, max_scenes=max_scenes)
    order = topological_sort(graph)
    context = _new_context(graph, asset_store)
    logger.info("Executing flow: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    await _run(context, order, progress_callback)
    logger.info(
        "Flow complete: %d executed, %d skipped, %d scenes",
        len(context.executed_nodes), len(context.skipped_nodes),
        len(context.scene_objects_by_scene),
    )
    return context


async def execute_flow_debug(
    graph: Graph,
    target_node_id: str,
    asset_store: AssetResolver | None = None,
    max_scenes: int | None = None,
) -> ExecutionContext:
    """Run only the prefix of the execution order that ends at ``target_node_id``."""
    validate_graph(graph, max_scenes=max_scenes)
    order = topological_sort(graph)
    if target_node_id not in order:
        raise DebugTargetNotFoundError(target_node_id)
    order = order[: order.index(target_node_id) + 1]

    context = _new_context(graph, asset_store)
    context.debug_mode = True
    context.debug_target_node_id = target_node_id
    logger.info("Debug execution up to %s (%d nodes)", target_node_id, len(order))
    await _run(context, order)
    return context


def run_flow(graph: Graph, **kwargs: Any) -> ExecutionContext:
    """Synchronous wrapper around :func:`execute_flow`."""
    return asyncio.run(execute_flow(graph, **kwargs))


def run_flow_debug(graph: Graph, target_node_id: str, **kwargs: Any) -> ExecutionContext:
    return asyncio.run(execute_flow_debug(graph, target_node_id, **kwargs))
