# flowgraph/validator/diagnostics.py
"""Diagnostic collection and formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flowgraph.ir.errors import DiagnosticsError

# Diagnostic message template: [FAIL] CODE: location message
DIAGNOSTIC_TEMPLATE = "[FAIL] {code}: {location}{message}"


class DiagnosticCode:
    """Machine-readable diagnostic codes.

    Planning codes are prefixed ADD_STEP_; the rest come from validation.
    """

    ANCHOR_MISSING = "ADD_STEP_ANCHOR_MISSING"
    NODE_ID_PLACEHOLDER = "ADD_STEP_NODE_ID_PLACEHOLDER"
    NODE_INVALID = "ADD_STEP_NODE_INVALID"
    NODE_EXISTS = "ADD_STEP_NODE_EXISTS"
    COMPONENT_UNKNOWN = "ADD_STEP_COMPONENT_UNKNOWN"
    ROUTING_INVALID = "ADD_STEP_ROUTING_INVALID"
    ROUTING_CYCLE = "ADD_STEP_ROUTING_CYCLE"
    ROUTING_MISSING = "ADD_STEP_ROUTING_MISSING"

    ENTRYPOINT_MISSING = "ENTRYPOINT_MISSING"
    ROUTE_TARGET_MISSING = "ROUTE_TARGET_MISSING"
    COMPONENT_PAYLOAD_REQUIRED = "COMPONENT_PAYLOAD_REQUIRED"
    COMPONENT_CONFIG_REQUIRED = "COMPONENT_CONFIG_REQUIRED"
    COMPONENT_NOT_FOUND = "COMPONENT_NOT_FOUND"
    QUESTIONS_FIELDS_REQUIRED = "QUESTIONS_FIELDS_REQUIRED"
    TEMPLATE_EMPTY = "TEMPLATE_EMPTY"


@dataclass(frozen=True)
class Diagnostic:
    """Structured, accumulable planning or validation failure."""

    code: str
    message: str
    location: Optional[str] = None

    def format(self) -> str:
        """Format diagnostic message."""
        return DIAGNOSTIC_TEMPLATE.format(
            code=self.code,
            location=f"{self.location} " if self.location else "",
            message=self.message,
        )

    def sort_key(self) -> Tuple[str, str]:
        """Sort key for deterministic ordering."""
        return (self.location or "", self.code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert diagnostic to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "location": self.location,
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def diagnostics_to_error(diagnostics: Sequence[Diagnostic], location: str = "add_step") -> None:
    """Raise a single DiagnosticsError when any diagnostics are present.

    For callers that need one failure value instead of a list.
    """
    if diagnostics:
        raise DiagnosticsError(diagnostics, location)


def diagnostics_to_dict(diagnostics: Sequence[Diagnostic]) -> Dict[str, Any]:
    """Convert a diagnostics list to a JSON-friendly report."""
    return {
        "diagnostics": [d.to_dict() for d in diagnostics],
        "count": len(diagnostics),
        "status": "FAIL" if diagnostics else "PASS",
    }


def sorted_diagnostics(diagnostics: Sequence[Diagnostic]) -> List[Diagnostic]:
    """Diagnostics in deterministic (location, code) order."""
    return sorted(diagnostics, key=lambda d: d.sort_key())
