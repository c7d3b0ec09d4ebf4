"""
document.py - Projection between flow documents (plain mappings) and the IR.

graph_from_doc() turns a schema-valid document mapping into a FlowGraph;
graph_to_doc() is its inverse and produces the mapping the YAML dumper
writes back. Reserved node keys (output, telemetry, ...) round-trip verbatim.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import NodeShapeError, RoutingError
from .types import (
    COMPONENT_EXEC,
    COMPONENT_KEY_RE,
    DEFAULT_ENTRYPOINT,
    ROUTE_KEYS,
    ComponentRef,
    FlowGraph,
    Node,
    NodeKind,
    OtherKind,
    QuestionsKind,
    Route,
    TemplateKind,
    kind_key,
)

# Node keys that are never the component key.
RESERVED_NODE_KEYS = (
    "telemetry",
    "output",
    "retry",
    "timeout",
    "when",
    "annotations",
    "meta",
)

ROUTING_SHORTHANDS = {
    "out": Route(out=True),
    "reply": Route(reply=True),
}


# =============================================================================
# Routing
# =============================================================================


def parse_route_list(raw: Any, node_id: str = "node") -> List[Route]:
    """Parse a routing array into a Route list.

    Accepts None (no routes) or a list of mappings restricted to the keys
    to/out/status/reply. `to` and `status` must be strings, `out` and
    `reply` booleans.

    Raises:
        RoutingError: On any other shape, an unsupported key or a mistyped value.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise RoutingError("routing must be an array", node_id=node_id)

    routes: List[Route] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise RoutingError("routing entries must be objects", node_id=node_id)
        for key in entry:
            if key not in ROUTE_KEYS:
                raise RoutingError(f"unsupported routing key '{key}'", node_id=node_id)
        for key in ("to", "status"):
            if entry.get(key) is not None and not isinstance(entry[key], str):
                raise RoutingError(f"routing '{key}' must be a string", node_id=node_id)
        for key in ("out", "reply"):
            if key in entry and not isinstance(entry[key], bool):
                raise RoutingError(f"routing '{key}' must be a boolean", node_id=node_id)
        routes.append(Route.from_dict(entry))
    return routes


def parse_routes(raw: Any, node_id: str = "node") -> List[Route]:
    """Parse a document routing value: an array, or the "out"/"reply" shorthand.

    Raises:
        RoutingError: Unknown shorthand, or see parse_route_list().
    """
    if isinstance(raw, str):
        if raw in ROUTING_SHORTHANDS:
            return [ROUTING_SHORTHANDS[raw]]
        raise RoutingError(f"unsupported routing shorthand '{raw}'", node_id=node_id)
    return parse_route_list(raw, node_id)


def routes_to_doc(routes: List[Route]) -> Any:
    """Serialize routes, collapsing a lone exit/reply marker to its shorthand."""
    if len(routes) == 1:
        for shorthand, route in ROUTING_SHORTHANDS.items():
            if routes[0] == route:
                return shorthand
    return [route.to_dict() for route in routes]


# =============================================================================
# Nodes
# =============================================================================


def _optional_str(raw: Dict[str, Any], key: str, node_id: str) -> Optional[str]:
    value = raw.pop(key, None)
    if value is not None and not isinstance(value, str):
        raise NodeShapeError(f"{key} must be a string", node_id=node_id, location=f"nodes.{node_id}.{key}")
    return value


def node_from_doc(node_id: str, node_doc: Dict[str, Any]) -> Node:
    """Build a Node from its document mapping."""
    if not isinstance(node_doc, dict):
        raise NodeShapeError(f"node '{node_id}' must be a mapping", node_id=node_id, location=f"nodes.{node_id}")

    raw = dict(node_doc)
    routing = parse_routes(raw.pop("routing", None), node_id)
    extras = {key: raw.pop(key) for key in RESERVED_NODE_KEYS if key in raw}
    pack_alias = _optional_str(raw, "pack_alias", node_id)
    operation = _optional_str(raw, "operation", node_id)

    if len(raw) != 1:
        raise NodeShapeError(
            f"Node '{node_id}' must contain exactly one component key like 'qa.process' "
            "plus optional 'routing'",
            node_id=node_id,
            location=f"nodes.{node_id}",
        )
    key, payload = next(iter(raw.items()))

    kind: NodeKind
    if key == COMPONENT_EXEC and not (operation or "").strip():
        raise NodeShapeError(
            f"node '{node_id}' missing operation key", node_id=node_id, location=f"nodes.{node_id}"
        )
    if key == "questions":
        if not isinstance(payload, dict):
            raise NodeShapeError("questions node must be a mapping", node_id=node_id, location=f"nodes.{node_id}.questions")
        kind = QuestionsKind(fields=payload)
    elif key == "template":
        if not isinstance(payload, str):
            raise NodeShapeError("template node must be a string", node_id=node_id, location=f"nodes.{node_id}.template")
        kind = TemplateKind(template=payload)
    elif COMPONENT_KEY_RE.match(key):
        kind = ComponentRef(component_id=key, pack_alias=pack_alias, operation=operation, payload=payload)
    else:
        kind = OtherKind(component_key=key, payload=payload)

    if not isinstance(kind, ComponentRef):
        # pack_alias/operation only mean something on component nodes
        if pack_alias is not None:
            extras["pack_alias"] = pack_alias
        if operation is not None:
            extras["operation"] = operation

    return Node(id=node_id, kind=kind, routing=routing, extras=extras)


def node_to_doc(node: Node) -> Dict[str, Any]:
    """Project a Node back to its document mapping."""
    kind = node.kind
    doc: Dict[str, Any] = {}
    if isinstance(kind, ComponentRef):
        doc[kind.component_id] = kind.payload
        if kind.pack_alias is not None:
            doc["pack_alias"] = kind.pack_alias
        if kind.operation is not None:
            doc["operation"] = kind.operation
    elif isinstance(kind, QuestionsKind):
        doc["questions"] = kind.fields
    elif isinstance(kind, TemplateKind):
        doc["template"] = kind.template
    elif isinstance(kind, OtherKind):
        doc[kind_key(kind)] = kind.payload
    else:
        raise TypeError(f"unknown node kind: {type(kind).__name__}")
    doc["routing"] = routes_to_doc(node.routing)
    doc.update(node.extras)
    return doc


# =============================================================================
# Graphs
# =============================================================================


def resolve_entrypoints(doc: Dict[str, Any]) -> Dict[str, str]:
    """Entrypoints in declaration order, with the default entrypoint first.

    The default comes from `start`, else a node named `in`, else the first
    node. Declared `entrypoints` follow.
    """
    nodes = doc.get("nodes") or {}
    entries: Dict[str, str] = {}
    start = doc.get("start")
    if start:
        entries[DEFAULT_ENTRYPOINT] = start
    elif "in" in nodes:
        entries[DEFAULT_ENTRYPOINT] = "in"
    elif nodes:
        entries[DEFAULT_ENTRYPOINT] = next(iter(nodes))
    for name, target in (doc.get("entrypoints") or {}).items():
        if isinstance(target, str):
            entries[name] = target
    return entries


def graph_from_doc(doc: Dict[str, Any]) -> FlowGraph:
    """Build a FlowGraph from a parsed, schema-valid flow document."""
    nodes: Dict[str, Node] = {}
    for node_id, node_doc in (doc.get("nodes") or {}).items():
        nodes[node_id] = node_from_doc(node_id, node_doc)

    return FlowGraph(
        id=doc["id"],
        kind=doc["type"],
        entrypoints=resolve_entrypoints(doc),
        nodes=nodes,
        title=doc.get("title"),
        description=doc.get("description"),
        parameters=dict(doc.get("parameters") or {}),
        tags=list(doc.get("tags") or []),
        schema_version=doc.get("schema_version"),
        meta=doc.get("meta"),
    )


def graph_to_doc(graph: FlowGraph) -> Dict[str, Any]:
    """Project a FlowGraph to a document mapping in canonical key order."""
    doc: Dict[str, Any] = {"id": graph.id, "type": graph.kind}
    if graph.title:
        doc["title"] = graph.title
    if graph.description:
        doc["description"] = graph.description

    # The first entrypoint is the default one, whatever its name.
    default = graph.default_entrypoint
    if default is not None and default[1]:
        doc["start"] = default[1]
    if graph.parameters:
        doc["parameters"] = graph.parameters
    if graph.tags:
        doc["tags"] = graph.tags
    if graph.schema_version is not None:
        doc["schema_version"] = graph.schema_version

    # Empty targets are the "no nodes left" sentinel and are not written.
    named = {
        name: target
        for name, target in graph.entrypoints.items()
        if name != DEFAULT_ENTRYPOINT and target
    }
    if named:
        doc["entrypoints"] = named
    if graph.meta:
        doc["meta"] = graph.meta

    doc["nodes"] = {node_id: node_to_doc(node) for node_id, node in graph.nodes.items()}
    return doc
