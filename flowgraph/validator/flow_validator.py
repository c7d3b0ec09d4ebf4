# flowgraph/validator/flow_validator.py
"""Structural validation of a flow graph.

Every check runs independently and all failures are returned together; an
empty list means the graph is valid.

Checks:
- The default entrypoint targets an existing node
- Every route target exists (terminal markers and the "out" literal excepted)
- Component payloads are present and carry the catalog's required fields
- Components are known to the catalog
- Questions nodes declare `fields`; template nodes are non-empty strings
"""

from __future__ import annotations

from typing import Any, List, Optional

from flowgraph.config.catalog import ComponentCatalog
from flowgraph.ir.types import (
    OUT_TARGET,
    ComponentRef,
    FlowGraph,
    Node,
    OtherKind,
    QuestionsKind,
    TemplateKind,
)
from flowgraph.validator.diagnostics import Diagnostic, DiagnosticCode


def has_required_field(payload: Any, field_name: str) -> bool:
    """True if a dotted field path resolves in nested payload mappings.

    >>> has_required_field({"http": {"url": "x"}}, "http.url")
    True
    """
    current = payload
    for part in field_name.split("."):
        if not isinstance(current, dict) or part not in current:
            return False
        current = current[part]
    return True


def missing_required_fields(payload: Any, required_fields) -> List[str]:
    return [f for f in required_fields if not has_required_field(payload, f)]


def _validate_entrypoint(graph: FlowGraph) -> List[Diagnostic]:
    default = graph.default_entrypoint
    if default is None:
        return []
    name, target = default
    if graph.has_node(target):
        return []
    return [
        Diagnostic(
            code=DiagnosticCode.ENTRYPOINT_MISSING,
            message=f"entrypoint '{name}' targets unknown node '{target}'",
            location=f"entrypoints.{name}",
        )
    ]


def _validate_routes(graph: FlowGraph, node: Node) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    for route in node.routing:
        if route.to is None or route.to == OUT_TARGET:
            continue
        if not graph.has_node(route.to):
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.ROUTE_TARGET_MISSING,
                    message=f"node '{node.id}' routes to unknown node '{route.to}'",
                    location=f"nodes.{node.id}.routing",
                )
            )
    return diagnostics


def _validate_component(
    node: Node,
    component: ComponentRef,
    catalog: Optional[ComponentCatalog],
) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    if component.payload is None:
        diagnostics.append(
            Diagnostic(
                code=DiagnosticCode.COMPONENT_PAYLOAD_REQUIRED,
                message=f"component '{component.component_id}' payload must not be null",
                location=f"nodes.{node.id}",
            )
        )

    if catalog is None:
        return diagnostics

    meta = catalog.resolve(component.component_id)
    if meta is None:
        diagnostics.append(
            Diagnostic(
                code=DiagnosticCode.COMPONENT_NOT_FOUND,
                message=f"component '{component.component_id}' not found in catalog",
                location=f"nodes.{node.id}",
            )
        )
        return diagnostics

    for field_name in missing_required_fields(component.payload, meta.required_fields):
        diagnostics.append(
            Diagnostic(
                code=DiagnosticCode.COMPONENT_CONFIG_REQUIRED,
                message=f"component '{component.component_id}' missing required config '{field_name}'",
                location=f"nodes.{node.id}.{field_name}",
            )
        )
    return diagnostics


def _validate_node(graph: FlowGraph, node: Node, catalog: Optional[ComponentCatalog]) -> List[Diagnostic]:
    diagnostics = _validate_routes(graph, node)
    kind = node.kind
    if isinstance(kind, ComponentRef):
        diagnostics.extend(_validate_component(node, kind, catalog))
    elif isinstance(kind, QuestionsKind):
        if "fields" not in kind.fields:
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.QUESTIONS_FIELDS_REQUIRED,
                    message="questions node missing fields",
                    location=f"nodes.{node.id}.questions.fields",
                )
            )
    elif isinstance(kind, TemplateKind):
        if not kind.template.strip():
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.TEMPLATE_EMPTY,
                    message="template node must not be empty",
                    location=f"nodes.{node.id}.template",
                )
            )
    elif isinstance(kind, OtherKind):
        pass
    else:
        raise TypeError(f"unknown node kind: {type(kind).__name__}")
    return diagnostics


def validate_flow(graph: FlowGraph, catalog: Optional[ComponentCatalog] = None) -> List[Diagnostic]:
    """Validate a graph, accumulating every failure.

    Args:
        graph: Graph to check.
        catalog: Component catalog. When None, catalog checks (unknown
            component, required fields) are skipped.

    Returns:
        Diagnostics in graph order; empty when valid.
    """
    diagnostics = _validate_entrypoint(graph)
    for node in graph.nodes.values():
        diagnostics.extend(_validate_node(graph, node, catalog))
    return diagnostics
