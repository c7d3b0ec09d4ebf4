"""
rewire.py - Routing rewrite for inserted steps.

rewrite_routes() expands NEXT_NODE_PLACEHOLDER in a new node's routing into
the anchor's prior routes; thread_anchor_routing() points the anchor at the
new node. Both refuse edges back to the anchor unless cycles are allowed.
No general cycle detection over the graph is done.
"""

from __future__ import annotations

from typing import List, Sequence

from flowgraph.ir.errors import RoutingCycleError, RoutingError
from flowgraph.ir.types import NEXT_NODE_PLACEHOLDER, Route, route_to

PLACEHOLDER_MISSING_MESSAGE = (
    f"routing is missing {NEXT_NODE_PLACEHOLDER}; cannot preserve anchor routing semantics"
)


def _check_cycle(route: Route, anchor: str, allow_cycles: bool) -> None:
    if not allow_cycles and route.targets(anchor):
        raise RoutingCycleError(f"routing would introduce a cycle back to anchor '{anchor}'", node_id=anchor)


def rewrite_routes(
    provided: Sequence[Route],
    fallback: Sequence[Route],
    allow_cycles: bool,
    anchor: str,
    require_placeholder: bool = True,
) -> List[Route]:
    """Replace each placeholder route in place with all fallback routes.

    Args:
        provided: The new node's routing as given.
        fallback: The anchor's routing before insertion.
        allow_cycles: Permit edges that target the anchor.
        anchor: Insertion anchor id.
        require_placeholder: Fail when `provided` has no placeholder.

    Returns:
        The rewritten routes (`provided` unchanged when it has no placeholder
        and none is required).

    Raises:
        RoutingError: A route targets the anchor, or the placeholder is
            required but missing.
    """
    rewritten: List[Route] = []
    replaced = False
    for route in provided:
        if route.is_placeholder:
            replaced = True
            for inherited in fallback:
                _check_cycle(inherited, anchor, allow_cycles)
                rewritten.append(inherited)
            continue
        _check_cycle(route, anchor, allow_cycles)
        rewritten.append(route)

    if not replaced and require_placeholder:
        raise RoutingError(PLACEHOLDER_MISSING_MESSAGE, location="node.routing")
    return rewritten


def thread_anchor_routing(
    new_node_id: str,
    prior_routes: Sequence[Route],
    allow_cycles: bool,
    anchor: str,
) -> List[Route]:
    """Routing for the anchor once a node is inserted after it.

    Raises:
        RoutingError: The anchor already routes to itself and cycles are not allowed.
    """
    if not allow_cycles:
        for route in prior_routes:
            if route.targets(anchor):
                raise RoutingCycleError(
                    f"inserting step would create a cycle back to anchor '{anchor}'",
                    node_id=anchor,
                )
    return [route_to(new_node_id)]
