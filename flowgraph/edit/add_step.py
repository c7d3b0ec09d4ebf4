"""
add_step.py - Insert a node into a flow graph in two phases.

plan_add_step() is pure: it resolves the anchor, normalizes the node, picks
the final id and rewrites routing, returning an AddStepPlan or the full list
of diagnostics. apply_plan() commits a plan against the same graph and
returns a new graph; the input graph is never mutated.

Usage:
    result = plan_add_step(graph, AddStepRequest(after="a", node=raw_node), catalog)
    if not result:
        for diag in result.diagnostics:
            print(diag.format())
    else:
        updated = apply_and_validate(graph, result.plan, catalog)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from flowgraph.config.catalog import ComponentCatalog
from flowgraph.edit.anchor import resolve_anchor
from flowgraph.edit.ids import generate_node_id, is_placeholder_hint
from flowgraph.edit.normalize import NormalizedNode, normalize_node
from flowgraph.edit.rewire import rewrite_routes, thread_anchor_routing
from flowgraph.ir.errors import (
    AnchorNotFoundError,
    DiagnosticsError,
    FlowError,
    NodeExistsError,
    RoutingCycleError,
    RoutingError,
)
from flowgraph.ir.loader import confirm_round_trip
from flowgraph.ir.types import DEFAULT_ENTRYPOINT, ComponentRef, FlowGraph, Node, NodeKind, Route, route_to
from flowgraph.validator.diagnostics import Diagnostic, DiagnosticCode, diagnostics_to_error
from flowgraph.validator.flow_validator import missing_required_fields, validate_flow


@dataclass
class AddStepRequest:
    """What to insert and where.

    Attributes:
        after: Anchor node id; None picks one (see resolve_anchor).
        node_id_hint: Preferred id; None falls back to the node's operation.
        node: Raw node mapping (see normalize_node).
        allow_cycles: Permit routes back to the anchor.
        require_placeholder: Routing must contain NEXT_NODE_PLACEHOLDER.
    """
    after: Optional[str] = None
    node_id_hint: Optional[str] = None
    node: Any = None
    allow_cycles: bool = False
    require_placeholder: bool = True


@dataclass(frozen=True)
class AddStepPlan:
    """A computed insertion, ready to apply once.

    Attributes:
        anchor: Anchor node id ("" for an empty graph).
        new_node: The node to insert, with its final id and routing.
        anchor_prior_routing: The anchor's routing before insertion.
        precedes_entry: Insert in front of the default entrypoint's target.
        allow_cycles: Cycle policy the plan was computed with.
    """
    anchor: str
    new_node: Node
    anchor_prior_routing: Tuple[Route, ...] = ()
    precedes_entry: bool = False
    allow_cycles: bool = False


@dataclass
class PlanResult:
    """Outcome of planning: a plan, or the diagnostics that prevented one."""
    plan: Optional[AddStepPlan] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.plan is not None

    def unwrap(self) -> AddStepPlan:
        """Return the plan or raise the diagnostics as one DiagnosticsError."""
        if self.plan is None:
            raise DiagnosticsError(self.diagnostics)
        return self.plan


# =============================================================================
# Plan
# =============================================================================


def _catalog_diagnostics(normalized: NormalizedNode, kind: NodeKind, catalog: ComponentCatalog) -> List[Diagnostic]:
    if not isinstance(kind, ComponentRef):
        return []
    meta = catalog.resolve(kind.component_id)
    if meta is None:
        return [
            Diagnostic(
                code=DiagnosticCode.COMPONENT_UNKNOWN,
                message=f"component '{kind.component_id}' not found in catalog",
                location="add_step.component",
            )
        ]
    return [
        Diagnostic(
            code=DiagnosticCode.COMPONENT_CONFIG_REQUIRED,
            message=f"component '{kind.component_id}' missing required config '{name}'",
            location=f"add_step.node.{name}",
        )
        for name in missing_required_fields(normalized.payload, meta.required_fields)
    ]


def plan_add_step(
    graph: FlowGraph,
    request: AddStepRequest,
    catalog: Optional[ComponentCatalog] = None,
) -> PlanResult:
    """Plan an insertion without touching the graph.

    Anchor, id-hint, node-shape and catalog problems are reported together;
    routing is only rewritten once those pass.
    """
    diagnostics: List[Diagnostic] = []

    anchor: Optional[str] = None
    precedes_entry = False
    try:
        resolution = resolve_anchor(graph, request.after)
        anchor, precedes_entry = resolution.anchor, resolution.precedes_entry
    except AnchorNotFoundError as e:
        diagnostics.append(Diagnostic(DiagnosticCode.ANCHOR_MISSING, e.message, "nodes"))

    if request.node_id_hint is not None and is_placeholder_hint(request.node_id_hint):
        diagnostics.append(
            Diagnostic(
                DiagnosticCode.NODE_ID_PLACEHOLDER,
                f"node id hint '{request.node_id_hint}' is a placeholder; pass a real node id",
                "add_step.node_id",
            )
        )

    normalized: Optional[NormalizedNode] = None
    kind: Optional[NodeKind] = None
    try:
        normalized = normalize_node(request.node)
        kind = normalized.to_kind()
    except FlowError as e:
        normalized = None
        diagnostics.append(Diagnostic(DiagnosticCode.NODE_INVALID, e.message, "add_step.node"))

    if normalized is not None and kind is not None and catalog is not None:
        diagnostics.extend(_catalog_diagnostics(normalized, kind, catalog))

    if diagnostics or anchor is None or normalized is None:
        return PlanResult(diagnostics=diagnostics)

    prior_routing: List[Route] = [] if graph.is_empty else list(graph.nodes[anchor].routing)

    hint = request.node_id_hint if request.node_id_hint is not None else normalized.operation
    node_id = generate_node_id(hint, anchor, graph.node_ids())
    routing_location = f"nodes.{node_id}.routing"

    try:
        routing = rewrite_routes(
            normalized.routing,
            prior_routing,
            # Entry-preceding routing is replaced by [to anchor] on apply.
            request.allow_cycles or precedes_entry,
            anchor,
            # Nothing to inherit in an empty graph.
            request.require_placeholder and not graph.is_empty,
        )
    except RoutingCycleError as e:
        return PlanResult(diagnostics=[Diagnostic(DiagnosticCode.ROUTING_CYCLE, e.message, routing_location)])
    except RoutingError as e:
        return PlanResult(diagnostics=[Diagnostic(DiagnosticCode.ROUTING_INVALID, e.message, routing_location)])

    if not routing and not graph.is_empty:
        return PlanResult(
            diagnostics=[
                Diagnostic(
                    DiagnosticCode.ROUTING_MISSING,
                    f"node '{node_id}' would have no routing; an inserted step needs at least one route",
                    routing_location,
                )
            ]
        )

    plan = AddStepPlan(
        anchor=anchor,
        new_node=normalized.to_node(node_id, routing),
        anchor_prior_routing=tuple(prior_routing),
        precedes_entry=precedes_entry,
        allow_cycles=request.allow_cycles,
    )
    return PlanResult(plan=plan)


# =============================================================================
# Apply
# =============================================================================


def _apply_to_empty(graph: FlowGraph, new_node: Node) -> FlowGraph:
    entrypoints: Dict[str, str] = {name: new_node.id for name in graph.entrypoints}
    if not entrypoints:
        entrypoints[DEFAULT_ENTRYPOINT] = new_node.id
    return graph.with_nodes({new_node.id: new_node}, entrypoints)


def _apply_before_entry(graph: FlowGraph, plan: AddStepPlan, new_node: Node) -> FlowGraph:
    new_node = new_node.with_routing([route_to(plan.anchor)])
    nodes: Dict[str, Node] = {}
    for node_id, node in graph.nodes.items():
        if node_id == plan.anchor:
            nodes[new_node.id] = new_node
        nodes[node_id] = copy.deepcopy(node)

    entrypoints = {
        name: (new_node.id if target == plan.anchor else target)
        for name, target in graph.entrypoints.items()
    }
    return graph.with_nodes(nodes, entrypoints)


def _apply_after_anchor(graph: FlowGraph, plan: AddStepPlan, new_node: Node) -> FlowGraph:
    nodes: Dict[str, Node] = {}
    for node_id, node in graph.nodes.items():
        if node_id != plan.anchor:
            nodes[node_id] = copy.deepcopy(node)
            continue
        anchor_routing = thread_anchor_routing(
            new_node.id,
            plan.anchor_prior_routing,
            plan.allow_cycles,
            plan.anchor,
        )
        nodes[node_id] = copy.deepcopy(node).with_routing(anchor_routing)
        nodes[new_node.id] = new_node
    return graph.with_nodes(nodes)


def apply_plan(graph: FlowGraph, plan: AddStepPlan) -> FlowGraph:
    """Commit a plan to the graph it was computed from.

    Raises:
        NodeExistsError: The new node's id is already taken.
        AnchorNotFoundError: The anchor vanished since planning.
        RoutingCycleError: The anchor's prior routing targets itself and the
            plan does not allow cycles.
    """
    new_node = copy.deepcopy(plan.new_node)
    if graph.has_node(new_node.id):
        raise NodeExistsError(new_node.id)

    if graph.is_empty:
        return _apply_to_empty(graph, new_node)

    if not graph.has_node(plan.anchor):
        raise AnchorNotFoundError(plan.anchor)

    if plan.precedes_entry:
        return _apply_before_entry(graph, plan, new_node)
    return _apply_after_anchor(graph, plan, new_node)


def apply_and_validate(
    graph: FlowGraph,
    plan: AddStepPlan,
    catalog: Optional[ComponentCatalog] = None,
) -> FlowGraph:
    """Apply a plan, then confirm the result serializes and validates.

    Raises:
        SchemaError: The edited graph no longer produces a schema-valid document.
        DiagnosticsError: The edited graph fails validate_flow().
    """
    updated = apply_plan(graph, plan)
    diagnostics_to_error(validate_flow(confirm_round_trip(updated), catalog))
    return updated
