"""
types.py - Typed intermediate representation (IR) of a flow graph.

A FlowGraph is a freestanding value: edit operations never mutate the graph
they receive, they return a new one. Node kinds form a closed set of variants
(ComponentRef, QuestionsKind, TemplateKind, OtherKind); consumers match on
them exhaustively via isinstance and raise on anything else.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

# Route target that config flows emit to mean "splice the anchor's prior
# routes here". Exact, case-sensitive match only.
NEXT_NODE_PLACEHOLDER = "NEXT_NODE_PLACEHOLDER"

# Route target literal meaning "exit the flow" rather than a node reference.
OUT_TARGET = "out"

DEFAULT_ENTRYPOINT = "default"

ROUTE_KEYS = ("to", "out", "status", "reply")

COMPONENT_KEY_RE = re.compile(r"^[A-Za-z][\w.-]*\.[\w.-]+$")

# Node keys that are valid without matching COMPONENT_KEY_RE.
BUILTIN_COMPONENT_KEYS = ("questions", "template")

# Generic component that names its operation in a sibling "operation" key.
COMPONENT_EXEC = "component.exec"


def is_valid_component_key(key: str) -> bool:
    return key in BUILTIN_COMPONENT_KEYS or bool(COMPONENT_KEY_RE.match(key))


# =============================================================================
# Routes
# =============================================================================


@dataclass(frozen=True)
class Route:
    """One outgoing edge of a node.

    Attributes:
        to: Target node id (or NEXT_NODE_PLACEHOLDER before rewriting).
        out: The flow exits externally here.
        status: Descriptive branch label (e.g. "Ok"/"Err"), never interpreted.
        reply: Send a synchronous reply here.
    """
    to: Optional[str] = None
    out: bool = False
    status: Optional[str] = None
    reply: bool = False

    @property
    def is_terminal(self) -> bool:
        """True for an exit/reply marker that targets no node."""
        return self.to is None and (self.out or self.reply)

    @property
    def is_placeholder(self) -> bool:
        return self.to == NEXT_NODE_PLACEHOLDER

    def targets(self, node_id: str) -> bool:
        return self.to is not None and self.to == node_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        """Create a Route from a routing mapping (keys already checked)."""
        return cls(
            to=data.get("to"),
            out=data.get("out") is True,
            status=data.get("status"),
            reply=data.get("reply") is True,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a mapping, omitting default-valued fields."""
        result: Dict[str, Any] = {}
        if self.to is not None:
            result["to"] = self.to
        if self.out:
            result["out"] = True
        if self.status is not None:
            result["status"] = self.status
        if self.reply:
            result["reply"] = True
        return result


def route_to(node_id: str) -> Route:
    """Plain single edge to a node."""
    return Route(to=node_id)


# =============================================================================
# Node kinds
# =============================================================================


@dataclass(frozen=True)
class ComponentRef:
    """Invocation of an external component operation."""
    component_id: str
    pack_alias: Optional[str] = None
    operation: Optional[str] = None
    payload: Any = None


@dataclass(frozen=True)
class QuestionsKind:
    """Fixed set of input fields used by the config-flow harness."""
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TemplateKind:
    """Single string template used by the config-flow harness."""
    template: str = ""


@dataclass(frozen=True)
class OtherKind:
    """Unrecognized component key with an opaque payload."""
    component_key: str
    payload: Any = None


NodeKind = Union[ComponentRef, QuestionsKind, TemplateKind, OtherKind]

NODE_KINDS: Tuple[type, ...] = (ComponentRef, QuestionsKind, TemplateKind, OtherKind)


def kind_key(kind: NodeKind) -> str:
    """Document key under which a node kind is written."""
    if isinstance(kind, ComponentRef):
        return kind.component_id
    if isinstance(kind, QuestionsKind):
        return "questions"
    if isinstance(kind, TemplateKind):
        return "template"
    if isinstance(kind, OtherKind):
        return kind.component_key
    raise TypeError(f"unknown node kind: {type(kind).__name__}")


# =============================================================================
# Nodes and graphs
# =============================================================================


@dataclass
class Node:
    """One step in the graph.

    Attributes:
        id: Must equal the node's key in FlowGraph.nodes.
        kind: One of the NodeKind variants.
        routing: Ordered outgoing routes.
        extras: Reserved node keys (output, telemetry, ...) kept verbatim.
    """
    id: str
    kind: NodeKind
    routing: List[Route] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    def with_routing(self, routing: List[Route]) -> "Node":
        return replace(self, routing=list(routing))

    def with_id(self, node_id: str) -> "Node":
        return replace(self, id=node_id)

    @property
    def component(self) -> Optional[ComponentRef]:
        return self.kind if isinstance(self.kind, ComponentRef) else None


@dataclass
class FlowGraph:
    """In-memory representation of one flow document.

    `entrypoints` and `nodes` are insertion-ordered; the first entrypoint is
    the default one.
    """
    id: str
    kind: str
    entrypoints: Dict[str, str] = field(default_factory=dict)
    nodes: Dict[str, Node] = field(default_factory=dict)
    title: Optional[str] = None
    description: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    schema_version: Optional[int] = None
    meta: Optional[Dict[str, Any]] = None

    def clone(self) -> "FlowGraph":
        """Deep copy, so edits on the result never leak into this graph."""
        return copy.deepcopy(self)

    def with_nodes(self, nodes: Dict[str, Node], entrypoints: Optional[Dict[str, str]] = None) -> "FlowGraph":
        """New graph sharing this graph's metadata with replaced nodes/entrypoints."""
        return replace(
            self.clone(),
            nodes=nodes,
            entrypoints=dict(self.entrypoints if entrypoints is None else entrypoints),
        )

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def default_entrypoint(self) -> Optional[Tuple[str, str]]:
        """(name, target) of the first declared entrypoint, if any."""
        for name, target in self.entrypoints.items():
            return name, target
        return None

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def node_ids(self) -> List[str]:
        return list(self.nodes)

    def iter_routes(self) -> Iterator[Tuple[str, Route]]:
        """Yield (node_id, route) for every route in node order."""
        for node_id, node in self.nodes.items():
            for route in node.routing:
                yield node_id, route
