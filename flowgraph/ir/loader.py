"""
loader.py - Load flow documents from YAML and validate them against the schema.

The loader is the boundary between document text and the IR:
- parse YAML (yaml.safe_load)
- validate the mapping against schemas/flow.schema.json (jsonschema)
- project it into a FlowGraph

dump_flow() goes the other way, and confirm_round_trip() runs both to prove an
edited graph still serializes to a schema-valid document.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import Draft7Validator

from .document import graph_from_doc, graph_to_doc
from .errors import DocumentError, SchemaError, SchemaErrorDetail
from .types import FlowGraph

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "flow.schema.json"
INLINE_SOURCE = "<inline>"


class _NoAliasDumper(yaml.SafeDumper):
    """SafeDumper that writes repeated objects in full instead of anchors."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


# =============================================================================
# Schema
# =============================================================================


@lru_cache(maxsize=8)
def load_schema(schema_path: Path = DEFAULT_SCHEMA_PATH) -> Dict[str, Any]:
    """Load and cache a JSON schema.

    Raises:
        FileNotFoundError: If the schema file does not exist.
    """
    if not schema_path.exists():
        raise FileNotFoundError(f"Flow schema not found: {schema_path}")
    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)
    logger.debug("Loaded flow schema %s", schema_path)
    return schema


def validate_document(
    doc: Any,
    schema_path: Optional[Path] = None,
) -> List[SchemaErrorDetail]:
    """Validate a parsed document against the flow schema.

    Returns:
        Schema violations in document order. Empty list means valid.
    """
    schema = load_schema(schema_path or DEFAULT_SCHEMA_PATH)
    validator = Draft7Validator(schema)
    details: List[SchemaErrorDetail] = []
    for error in sorted(
        validator.iter_errors(doc), key=lambda e: [str(p) for p in e.absolute_path]
    ):
        pointer = "/" + "/".join(str(p) for p in error.absolute_path)
        details.append(SchemaErrorDetail(message=error.message, pointer=pointer))
    return details


# =============================================================================
# Loading
# =============================================================================


def parse_document(text: str, source_label: str = INLINE_SOURCE) -> Dict[str, Any]:
    """Parse YAML text into a document mapping.

    Raises:
        DocumentError: If the text is not YAML or not a mapping.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            raise DocumentError(
                str(getattr(e, "problem", None) or e),
                source_label,
                line=mark.line + 1,
                column=mark.column + 1,
            ) from e
        raise DocumentError(str(e), source_label) from e

    if not isinstance(data, dict):
        raise DocumentError("flow document must be a mapping", source_label)
    return data


def load_flow_from_str(
    text: str,
    source_label: str = INLINE_SOURCE,
    schema_path: Optional[Path] = None,
) -> FlowGraph:
    """Load a FlowGraph from YAML text.

    Raises:
        DocumentError: Unparseable YAML.
        SchemaError: Document fails schema validation.
        NodeShapeError, RoutingError: Node content the schema cannot express.
    """
    doc = parse_document(text, source_label)
    details = validate_document(doc, schema_path)
    if details:
        raise SchemaError(details, source_label)
    return graph_from_doc(doc)


def load_flow_from_path(path: Union[str, Path], schema_path: Optional[Path] = None) -> FlowGraph:
    """Load a FlowGraph from a YAML file.

    Raises:
        FileNotFoundError: If the flow file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flow document not found: {path}")
    text = path.read_text(encoding="utf-8")
    return load_flow_from_str(text, source_label=str(path), schema_path=schema_path)


# =============================================================================
# Dumping
# =============================================================================


def dump_flow(graph: FlowGraph) -> str:
    """Serialize a FlowGraph to YAML, keeping node and key order."""
    text = yaml.dump(
        graph_to_doc(graph),
        Dumper=_NoAliasDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    if not text.endswith("\n"):
        text += "\n"
    return text


def confirm_round_trip(graph: FlowGraph, schema_path: Optional[Path] = None) -> FlowGraph:
    """Dump and re-load a graph so schema violations surface before a write."""
    return load_flow_from_str(dump_flow(graph), source_label=f"<flow:{graph.id}>", schema_path=schema_path)
