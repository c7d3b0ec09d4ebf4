"""
flowgraph/ir - Typed flow graph and its document boundary.

Usage:
    from flowgraph.ir import (
        # Types
        FlowGraph,
        Node,
        Route,
        NEXT_NODE_PLACEHOLDER,
        # Loader
        load_flow_from_path,
        dump_flow,
        # Manager (reads/writes flow files)
        FlowDocumentManager,
    )

    manager = FlowDocumentManager()
    graph, etag = manager.read("flows/main.ygtc")
"""

from .types import (
    NEXT_NODE_PLACEHOLDER,
    DEFAULT_ENTRYPOINT,
    OUT_TARGET,
    ComponentRef,
    FlowGraph,
    Node,
    NodeKind,
    OtherKind,
    QuestionsKind,
    Route,
    TemplateKind,
)
from .errors import (
    AnchorNotFoundError,
    BadComponentKeyError,
    ConcurrencyError,
    DiagnosticsError,
    DocumentError,
    FlowError,
    MultiplePredecessorsError,
    NodeExistsError,
    NodeNotFoundError,
    NodeShapeError,
    RoutingCycleError,
    RoutingError,
    SchemaError,
)
from .document import graph_from_doc, graph_to_doc
from .loader import (
    confirm_round_trip,
    dump_flow,
    load_flow_from_path,
    load_flow_from_str,
    validate_document,
)
from .manager import FlowDocumentManager

__all__ = [
    # Types
    "NEXT_NODE_PLACEHOLDER",
    "DEFAULT_ENTRYPOINT",
    "OUT_TARGET",
    "ComponentRef",
    "FlowGraph",
    "Node",
    "NodeKind",
    "OtherKind",
    "QuestionsKind",
    "Route",
    "TemplateKind",
    # Errors
    "AnchorNotFoundError",
    "BadComponentKeyError",
    "ConcurrencyError",
    "DiagnosticsError",
    "DocumentError",
    "FlowError",
    "MultiplePredecessorsError",
    "NodeExistsError",
    "NodeNotFoundError",
    "NodeShapeError",
    "RoutingCycleError",
    "RoutingError",
    "SchemaError",
    # Document projection
    "graph_from_doc",
    "graph_to_doc",
    # Loader
    "confirm_round_trip",
    "dump_flow",
    "load_flow_from_path",
    "load_flow_from_str",
    "validate_document",
    # Manager
    "FlowDocumentManager",
]
