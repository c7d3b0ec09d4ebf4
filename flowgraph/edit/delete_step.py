"""
delete_step.py - Remove a node and repair the edges that pointed at it.

With the default splice strategy every predecessor edge to the deleted node
is replaced by the deleted node's own routes, so its callers now call what it
used to call. A node with several predecessors is only deleted when the
caller asks for splice-all.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Dict, List

from flowgraph.ir.errors import MultiplePredecessorsError, NodeNotFoundError
from flowgraph.ir.types import FlowGraph, Node, Route

# Entrypoint target once the last node is gone.
NO_NODES_TARGET = ""


class DeleteStrategy(str, Enum):
    SPLICE = "splice"
    REMOVE_ONLY = "remove-only"


class MultiPredecessorPolicy(str, Enum):
    ERROR = "error"
    SPLICE_ALL = "splice-all"


def find_predecessors(graph: FlowGraph, node_id: str) -> List[str]:
    """Ids of nodes with at least one route to node_id, in graph order."""
    return [
        other_id
        for other_id, node in graph.nodes.items()
        if other_id != node_id and any(route.targets(node_id) for route in node.routing)
    ]


def _splice_routes(routes: List[Route], deleted_id: str, replacement: List[Route]) -> List[Route]:
    spliced: List[Route] = []
    for route in routes:
        if route.targets(deleted_id):
            spliced.extend(replacement)
        else:
            spliced.append(route)
    return spliced


def delete_step(
    graph: FlowGraph,
    node_id: str,
    strategy: DeleteStrategy = DeleteStrategy.SPLICE,
    multi_predecessor: MultiPredecessorPolicy = MultiPredecessorPolicy.ERROR,
) -> FlowGraph:
    """Return a new graph without node_id.

    Raises:
        NodeNotFoundError: No node has this id.
        MultiplePredecessorsError: Several nodes route to node_id and the
            policy is ERROR.
    """
    strategy = DeleteStrategy(strategy)
    multi_predecessor = MultiPredecessorPolicy(multi_predecessor)

    if not graph.has_node(node_id):
        raise NodeNotFoundError(node_id)

    predecessors = find_predecessors(graph, node_id)
    if len(predecessors) > 1 and multi_predecessor is MultiPredecessorPolicy.ERROR:
        raise MultiplePredecessorsError(node_id, predecessors)

    deleted = graph.nodes[node_id]
    # Terminal-only routing leaves nothing to splice in; the edge is dropped.
    outgoing = [route for route in deleted.routing if not route.targets(node_id)]
    replacement = [] if all(route.is_terminal for route in outgoing) else outgoing

    nodes: Dict[str, Node] = {}
    for other_id, node in graph.nodes.items():
        if other_id == node_id:
            continue
        node = copy.deepcopy(node)
        if strategy is DeleteStrategy.SPLICE and other_id in predecessors:
            node = node.with_routing(_splice_routes(node.routing, node_id, replacement))
        nodes[other_id] = node

    fallback = next(iter(nodes), NO_NODES_TARGET)
    entrypoints = {
        name: (fallback if target == node_id else target)
        for name, target in graph.entrypoints.items()
    }
    return graph.with_nodes(nodes, entrypoints)
