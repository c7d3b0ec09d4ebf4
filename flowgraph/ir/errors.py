"""
errors.py - Exception types for flow document loading and graph edits.

These are the single-failure shape: raised where the failure happens and
propagated to the caller. Accumulated planning/validation failures use
Diagnostic lists instead (see flowgraph.validator.diagnostics).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from flowgraph.validator.diagnostics import Diagnostic


class FlowError(Exception):
    """Base exception for flow document and graph edit errors."""

    def __init__(self, message: str, location: Optional[str] = None):
        self.message = message
        self.location = location
        super().__init__(self._format(message, location))

    @staticmethod
    def _format(message: str, location: Optional[str]) -> str:
        if location:
            return f"{message} (at {location})"
        return message


class DocumentError(FlowError):
    """Raised when flow document text cannot be parsed."""

    def __init__(
        self,
        message: str,
        location: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.line = line
        self.column = column
        if location and line is not None:
            location = f"{location}:{line}:{column or 0}"
        super().__init__(f"YAML parse error: {message}", location)


@dataclass
class SchemaErrorDetail:
    """One JSON Schema violation."""

    message: str
    pointer: str  # JSON pointer into the document, "/" for root

    def __str__(self) -> str:
        return f"{self.pointer}: {self.message}"


class SchemaError(FlowError):
    """Raised when a flow document fails JSON Schema validation."""

    def __init__(self, details: Sequence[SchemaErrorDetail], location: Optional[str] = None):
        self.details: List[SchemaErrorDetail] = list(details)
        joined = "; ".join(str(d) for d in self.details)
        super().__init__(f"Schema validation failed: {joined}", location)


class NodeShapeError(FlowError):
    """Raised when a node description does not have the canonical shape."""

    def __init__(self, message: str, node_id: str = "add_step", location: Optional[str] = None):
        self.node_id = node_id
        super().__init__(message, location or "node")


class BadComponentKeyError(NodeShapeError):
    """Raised when a node's component key does not match the key pattern."""

    def __init__(self, component: str, node_id: str = "add_step", location: Optional[str] = None):
        self.component = component
        super().__init__(
            f"Invalid component key '{component}' in node '{node_id}' "
            r"(must match ^[A-Za-z][\w.-]*\.[\w.-]+$)",
            node_id=node_id,
            location=location,
        )


class RoutingError(FlowError):
    """Raised when routing is malformed or would break the graph."""

    def __init__(self, message: str, node_id: Optional[str] = None, location: Optional[str] = None):
        self.node_id = node_id
        if location is None and node_id:
            location = f"nodes.{node_id}.routing"
        super().__init__(message, location)


class RoutingCycleError(RoutingError):
    """Raised when new routing would point back at the insertion anchor."""


class AnchorNotFoundError(FlowError):
    """Raised when the insertion anchor does not exist in the graph."""

    def __init__(self, anchor: str):
        self.anchor = anchor
        super().__init__(f"anchor node '{anchor}' not found", f"nodes.{anchor}")


class NodeNotFoundError(FlowError):
    """Raised when a referenced node does not exist in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"node '{node_id}' not found", f"nodes.{node_id}")


class NodeExistsError(FlowError):
    """Raised when a node id is already taken."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"node '{node_id}' already exists", f"nodes.{node_id}")


class MultiplePredecessorsError(FlowError):
    """Raised when deleting a fan-in node without an explicit splice-all."""

    def __init__(self, node_id: str, predecessors: Sequence[str]):
        self.node_id = node_id
        self.predecessors = list(predecessors)
        super().__init__(
            f"multiple predecessors for '{node_id}': {', '.join(self.predecessors)} "
            "(use splice-all to rewire every predecessor)",
            f"nodes.{node_id}",
        )


class DiagnosticsError(FlowError):
    """A list of diagnostics collapsed into a single failure."""

    def __init__(self, diagnostics: Sequence["Diagnostic"], location: Optional[str] = "add_step"):
        self.diagnostics = list(diagnostics)
        combined = "; ".join(f"{d.code}: {d.message}" for d in self.diagnostics)
        super().__init__(combined, location)


class ConcurrencyError(FlowError):
    """Raised when an ETag mismatch indicates the document changed on disk."""

    def __init__(self, path: str, expected_etag: str, actual_etag: str):
        self.path = path
        self.expected_etag = expected_etag
        self.actual_etag = actual_etag
        super().__init__(
            f"flow document '{path}' was modified by another process. "
            f"Expected ETag: {expected_etag}, Actual: {actual_etag}",
            path,
        )
