"""
normalize.py - Canonicalize a raw node description before insertion.

Raw nodes come from callers and config flows as plain mappings:

    {"qa.process": {...}, "pack_alias": "qa", "routing": [{"to": "NEXT_NODE_PLACEHOLDER"}]}

Legacy emitters wrap the component in a "tool" object instead:

    {"tool": {"component": "qa.process", "operation": "run", "prompt": "..."}}

normalize_node() accepts both and returns a NormalizedNode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flowgraph.ir.document import parse_route_list
from flowgraph.ir.errors import BadComponentKeyError, NodeShapeError
from flowgraph.ir.types import (
    COMPONENT_EXEC,
    ComponentRef,
    Node,
    NodeKind,
    OtherKind,
    QuestionsKind,
    Route,
    TemplateKind,
    is_valid_component_key,
)

TOOL_KEY = "tool"

# Node id used in errors before the final id is known.
PENDING_NODE_ID = "add_step"


@dataclass(frozen=True)
class NormalizedNode:
    """Canonical node description: one component key plus extracted fields."""
    component_id: str
    pack_alias: Optional[str] = None
    operation: Optional[str] = None
    payload: Any = None
    routing: List[Route] = field(default_factory=list)

    def to_kind(self) -> NodeKind:
        """Node kind for this component key."""
        if self.component_id == "questions":
            if not isinstance(self.payload, dict):
                raise NodeShapeError("questions node must be a mapping", location="node.questions")
            return QuestionsKind(fields=self.payload)
        if self.component_id == "template":
            if not isinstance(self.payload, str):
                raise NodeShapeError("template node must be a string", location="node.template")
            return TemplateKind(template=self.payload)
        if is_valid_component_key(self.component_id):
            return ComponentRef(
                component_id=self.component_id,
                pack_alias=self.pack_alias,
                operation=self.operation,
                payload=self.payload,
            )
        return OtherKind(component_key=self.component_id, payload=self.payload)

    def to_node(self, node_id: str, routing: Optional[List[Route]] = None) -> Node:
        """Build the IR node under its final id."""
        return Node(
            id=node_id,
            kind=self.to_kind(),
            routing=list(self.routing if routing is None else routing),
        )


def _unwrap_tool(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Replace a "tool" wrapper with a top-level component key."""
    tool = raw.pop(TOOL_KEY)
    if not isinstance(tool, dict):
        raise NodeShapeError("tool must be an object", location="node.tool")

    nested = dict(tool)
    component = nested.pop("component", None)
    if not isinstance(component, str) or not component.strip():
        raise NodeShapeError("tool.component must be a non-empty string", location="node.tool.component")
    if component in raw:
        raise NodeShapeError(
            f"ambiguous component '{component}': given both inside tool and as a node key",
            location="node.tool.component",
        )

    for key in ("pack_alias", "operation"):
        if key in nested:
            value = nested.pop(key)
            raw.setdefault(key, value)

    raw[component] = nested
    return raw


def _take_str(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.pop(key, None)
    if value is not None and not isinstance(value, str):
        raise NodeShapeError(f"{key} must be a string", location=f"node.{key}")
    return value


def normalize_node(raw: Any) -> NormalizedNode:
    """Normalize a raw node mapping.

    Raises:
        NodeShapeError: Non-mapping node, zero or several component keys,
            ambiguous tool wrapper, component.exec without an operation.
        BadComponentKeyError: Component key fails the key pattern.
        RoutingError: Routing is not an array of {to, out, status, reply} objects.
    """
    if not isinstance(raw, dict):
        raise NodeShapeError("node must be an object", location="node")

    node = dict(raw)
    if TOOL_KEY in node:
        node = _unwrap_tool(node)

    pack_alias = _take_str(node, "pack_alias")
    operation = _take_str(node, "operation")
    routing = parse_route_list(node.pop("routing", None), PENDING_NODE_ID)

    if not node:
        raise NodeShapeError("node must contain a component key", location="node")
    if len(node) > 1:
        raise NodeShapeError(
            f"node must have exactly one component key (found: {', '.join(node)})",
            location="node",
        )

    component_id, payload = next(iter(node.items()))
    if not is_valid_component_key(component_id):
        raise BadComponentKeyError(component_id, node_id=PENDING_NODE_ID, location="node")

    if component_id == COMPONENT_EXEC:
        if operation is None and isinstance(payload, dict):
            nested_op = payload.get("operation")
            if isinstance(nested_op, str) and nested_op.strip():
                operation = nested_op.strip()
                payload = {k: v for k, v in payload.items() if k != "operation"}
        if not (operation or "").strip():
            raise NodeShapeError("component.exec requires a non-empty operation", location="node.operation")

    return NormalizedNode(
        component_id=component_id,
        pack_alias=pack_alias,
        operation=operation,
        payload=payload,
        routing=routing,
    )
