"""
modes.py - Build raw node descriptions and routing values from caller options.

These helpers turn CLI-style inputs (component id, payload, routing flags,
answers) into the raw shapes that plan_add_step() and update_step() accept.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from flowgraph.edit.normalize import normalize_node
from flowgraph.ir.document import parse_route_list, parse_routes
from flowgraph.ir.errors import RoutingError
from flowgraph.ir.types import NEXT_NODE_PLACEHOLDER, Route

PLACEHOLDER_ROUTING: List[Dict[str, Any]] = [{"to": NEXT_NODE_PLACEHOLDER}]


def materialize_node(
    component_id: str,
    payload: Any,
    pack_alias: Optional[str] = None,
    operation: Optional[str] = None,
    routing: Any = None,
) -> Dict[str, Any]:
    """Raw node mapping for a component invocation.

    Routing defaults to a single placeholder route so the node inherits the
    anchor's routes. The result is checked with normalize_node() so a bad
    shape fails here rather than during planning.
    """
    node: Dict[str, Any] = {component_id: payload}
    if pack_alias is not None:
        node["pack_alias"] = pack_alias
    if operation is not None:
        node["operation"] = operation
    node["routing"] = [dict(r) for r in PLACEHOLDER_ROUTING] if routing is None else routing

    normalize_node(node)
    return node


def _split_targets(multi_to: str) -> List[str]:
    targets = [t.strip() for t in multi_to.split(",")]
    targets = [t for t in targets if t]
    if not targets:
        raise RoutingError("multi-to routing requires at least one target", location="routing")
    return targets


def routing_from_options(
    out: bool = False,
    reply: bool = False,
    next_node: Optional[str] = None,
    multi_to: Optional[str] = None,
    routing_json: Optional[str] = None,
) -> Tuple[Any, bool]:
    """Routing value and placeholder requirement for an add-step.

    Explicit routing replaces placeholder threading, so only the default
    (no option given) requires the placeholder.

    Raises:
        RoutingError: More than one option given, or unparseable routing JSON.
    """
    chosen = [
        name
        for name, given in (
            ("out", out),
            ("reply", reply),
            ("next_node", next_node is not None),
            ("multi_to", multi_to is not None),
            ("routing_json", routing_json is not None),
        )
        if given
    ]
    if len(chosen) > 1:
        raise RoutingError(f"routing options are mutually exclusive: {', '.join(chosen)}", location="routing")

    if routing_json is not None:
        try:
            return json.loads(routing_json), False
        except json.JSONDecodeError as e:
            raise RoutingError(f"routing JSON is invalid: {e}", location="routing") from e
    if out:
        return [{"out": True}], False
    if reply:
        return [{"reply": True}], False
    if next_node is not None:
        return [{"to": next_node}], False
    if multi_to is not None:
        return [{"to": target} for target in _split_targets(multi_to)], False
    return [dict(r) for r in PLACEHOLDER_ROUTING], True


def routes_from_options(
    out: bool = False,
    reply: bool = False,
    next_node: Optional[str] = None,
    multi_to: Optional[str] = None,
    routing_json: Optional[str] = None,
) -> Optional[List[Route]]:
    """Routing override for an update-step; None when no option is given."""
    if not (out or reply or next_node is not None or multi_to is not None or routing_json is not None):
        return None
    if routing_json is not None:
        return parse_routing_arg(routing_json)
    value, _ = routing_from_options(out, reply, next_node, multi_to, None)
    return parse_route_list(value, "update_step")


def parse_routing_arg(raw: str) -> List[Route]:
    """Parse "out"/"reply" shorthand or a JSON array of route objects.

    Raises:
        RoutingError: Neither shorthand nor a valid route array.
    """
    text = raw.strip()
    if text in ("out", "reply"):
        return parse_routes(text, "routing")
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise RoutingError(f"routing must be 'out', 'reply' or a JSON array: {e}", location="routing") from e
    return parse_route_list(value, "routing")


def _load_mapping(text: str, label: str) -> Dict[str, Any]:
    """Parse JSON or YAML text that must hold a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"{label} is not valid JSON/YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{label} must contain a JSON/YAML object")
    return data


def parse_answers(
    answers: Optional[str] = None,
    answers_file: Optional[Union[str, Path]] = None,
) -> Optional[Dict[str, Any]]:
    """Merge answers from a file and inline text (inline wins).

    Returns None when neither is given.

    Raises:
        ValueError: Either source is not a JSON/YAML mapping.
    """
    if answers is None and answers_file is None:
        return None
    merged: Dict[str, Any] = {}
    if answers_file is not None:
        path = Path(answers_file)
        merged.update(_load_mapping(path.read_text(encoding="utf-8"), f"answers file {path}"))
    if answers is not None:
        merged.update(_load_mapping(answers, "--answers"))
    return merged


def parse_payload(raw: Optional[str]) -> Any:
    """Payload from JSON/YAML text; empty object when not given."""
    if raw is None:
        return {}
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ValueError(f"payload is not valid JSON/YAML: {e}") from e
