"""Choose the node after which a new step is inserted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flowgraph.ir.errors import AnchorNotFoundError
from flowgraph.ir.types import FlowGraph

# Anchor of an insertion into a graph with no nodes.
EMPTY_ANCHOR = ""


@dataclass(frozen=True)
class AnchorResolution:
    """Resolved anchor.

    Attributes:
        anchor: Existing node id, or EMPTY_ANCHOR for an empty graph.
        precedes_entry: No anchor was requested and the resolved one is the
            default entrypoint's target, so the new node becomes the entry.
    """
    anchor: str
    precedes_entry: bool = False


def resolve_anchor(graph: FlowGraph, after: Optional[str] = None) -> AnchorResolution:
    """Resolve the insertion anchor.

    Raises:
        AnchorNotFoundError: `after` names a node that does not exist.
    """
    if after is not None:
        if not graph.has_node(after):
            raise AnchorNotFoundError(after)
        return AnchorResolution(anchor=after)

    if graph.is_empty:
        return AnchorResolution(anchor=EMPTY_ANCHOR)

    default = graph.default_entrypoint
    if default is not None and graph.has_node(default[1]):
        # Inserting without an anchor on a flow with an entry puts the new
        # step in front of it.
        return AnchorResolution(anchor=default[1], precedes_entry=True)

    return AnchorResolution(anchor=graph.node_ids()[0])
