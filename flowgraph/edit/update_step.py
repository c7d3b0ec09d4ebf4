"""
update_step.py - Replace one node's operation, payload and/or routing in place.

The node keeps its id and position; only the overridden fields change.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from flowgraph.config.catalog import ComponentCatalog
from flowgraph.ir.document import parse_route_list
from flowgraph.ir.errors import NodeNotFoundError, NodeShapeError, RoutingError
from flowgraph.ir.loader import confirm_round_trip
from flowgraph.ir.types import (
    ComponentRef,
    FlowGraph,
    Node,
    NodeKind,
    OtherKind,
    QuestionsKind,
    Route,
    TemplateKind,
)
from flowgraph.validator.diagnostics import diagnostics_to_error
from flowgraph.validator.flow_validator import validate_flow

# Routing override shorthands, each expanding to a single flagged route.
ROUTING_SHORTHANDS: Dict[str, Route] = {
    "exit": Route(out=True),
    "out": Route(out=True),
    "reply": Route(reply=True),
}

RoutingOverride = Union[str, Sequence[Route], Sequence[Dict[str, Any]]]


@dataclass
class StepOverrides:
    """Caller-supplied replacements; None leaves the field unchanged.

    Attributes:
        operation: New operation name (component nodes only).
        answers: Mapping merged onto the payload, or any other value that
            replaces it outright.
        routing: Route list, or "exit"/"out"/"reply".
    """
    operation: Optional[str] = None
    answers: Any = None
    routing: Optional[RoutingOverride] = None

    @property
    def is_empty(self) -> bool:
        return self.operation is None and self.answers is None and self.routing is None


def merge_payload(payload: Any, answers: Any) -> Any:
    """Shallow-merge answers onto a payload mapping (answers win)."""
    if isinstance(answers, dict):
        base = dict(payload) if isinstance(payload, dict) else {}
        base.update(answers)
        return base
    return answers


def resolve_routing_override(routing: RoutingOverride, node_id: str) -> List[Route]:
    """Expand a routing override into a route list.

    Raises:
        RoutingError: Unknown shorthand or malformed route mappings.
    """
    if isinstance(routing, str):
        if routing not in ROUTING_SHORTHANDS:
            raise RoutingError(
                f"unsupported routing shorthand '{routing}' (use exit, out or reply)",
                node_id=node_id,
            )
        return [ROUTING_SHORTHANDS[routing]]
    if all(isinstance(r, Route) for r in routing):
        return list(routing)  # type: ignore[arg-type]
    return parse_route_list(list(routing), node_id)


def _apply_kind_overrides(node_id: str, kind: NodeKind, overrides: StepOverrides) -> NodeKind:
    if isinstance(kind, ComponentRef):
        if overrides.operation is not None and not overrides.operation.strip():
            raise NodeShapeError("operation must not be empty", node_id=node_id, location=f"nodes.{node_id}.operation")
        return replace(
            kind,
            operation=kind.operation if overrides.operation is None else overrides.operation,
            payload=kind.payload if overrides.answers is None else merge_payload(kind.payload, overrides.answers),
        )
    if isinstance(kind, OtherKind):
        if overrides.operation is not None:
            raise NodeShapeError(
                f"node '{node_id}' is not a component node; operation cannot be set",
                node_id=node_id,
                location=f"nodes.{node_id}.operation",
            )
        if overrides.answers is None:
            return kind
        return replace(kind, payload=merge_payload(kind.payload, overrides.answers))
    if isinstance(kind, (QuestionsKind, TemplateKind)):
        if overrides.operation is not None or overrides.answers is not None:
            raise NodeShapeError(
                f"node '{node_id}' is a {type(kind).__name__} node; only routing can be updated",
                node_id=node_id,
                location=f"nodes.{node_id}",
            )
        return kind
    raise TypeError(f"unknown node kind: {type(kind).__name__}")


def update_step(graph: FlowGraph, node_id: str, overrides: StepOverrides) -> FlowGraph:
    """Return a new graph with one node's fields overridden.

    Raises:
        NodeNotFoundError: No node has this id.
        NodeShapeError: The override does not apply to the node's kind.
        RoutingError: The routing override is malformed.
    """
    if not graph.has_node(node_id):
        raise NodeNotFoundError(node_id)

    result = graph.clone()
    current = result.nodes[node_id]
    updated = Node(
        id=current.id,
        kind=_apply_kind_overrides(node_id, current.kind, overrides),
        routing=(
            list(current.routing)
            if overrides.routing is None
            else resolve_routing_override(overrides.routing, node_id)
        ),
        extras=dict(current.extras),
    )

    result.nodes[node_id] = updated
    return result


def update_and_validate(
    graph: FlowGraph,
    node_id: str,
    overrides: StepOverrides,
    catalog: Optional[ComponentCatalog] = None,
) -> FlowGraph:
    """update_step() followed by the same checks as an add-step.

    Raises:
        SchemaError: The result no longer serializes to a valid document.
        DiagnosticsError: The result fails validate_flow().
    """
    updated = update_step(graph, node_id, overrides)
    diagnostics_to_error(validate_flow(confirm_round_trip(updated), catalog), location=f"nodes.{node_id}")
    return updated
