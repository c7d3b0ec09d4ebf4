"""Flow validation and diagnostics."""

from .diagnostics import Diagnostic, DiagnosticCode, diagnostics_to_error
from .flow_validator import validate_flow

__all__ = ["Diagnostic", "DiagnosticCode", "diagnostics_to_error", "validate_flow"]
