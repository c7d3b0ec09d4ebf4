"""Tests for node shape normalization."""

import pytest

from flowgraph.edit.normalize import normalize_node
from flowgraph.ir.errors import BadComponentKeyError, NodeShapeError, RoutingError
from flowgraph.ir.types import NEXT_NODE_PLACEHOLDER, ComponentRef, QuestionsKind, Route


class TestCanonicalNodes:
    """Tests for nodes already in canonical shape."""

    def test_extracts_fields(self):
        """pack_alias, operation and routing are separated from the payload."""
        node = normalize_node(
            {
                "qa.process": {"prompt": "hi"},
                "pack_alias": "qa",
                "operation": "run",
                "routing": [{"to": NEXT_NODE_PLACEHOLDER}],
            }
        )
        assert node.component_id == "qa.process"
        assert node.pack_alias == "qa"
        assert node.operation == "run"
        assert node.payload == {"prompt": "hi"}
        assert node.routing == [Route(to=NEXT_NODE_PLACEHOLDER)]

    def test_missing_routing_is_empty(self):
        node = normalize_node({"qa.process": {}})
        assert node.routing == []

    def test_reply_route(self):
        node = normalize_node({"qa.process": {}, "routing": [{"reply": True}]})
        assert node.routing == [Route(reply=True)]

    def test_builtin_questions_key(self):
        node = normalize_node({"questions": {"fields": []}})
        assert node.component_id == "questions"
        assert isinstance(node.to_kind(), QuestionsKind)

    def test_to_node_builds_component(self):
        node = normalize_node({"qa.process": {"prompt": "x"}, "operation": "run"}).to_node("n1")
        assert node.id == "n1"
        assert node.kind == ComponentRef(component_id="qa.process", operation="run", payload={"prompt": "x"})

    def test_input_not_mutated(self):
        raw = {"tool": {"component": "qa.process", "prompt": "x"}}
        normalize_node(raw)
        assert raw == {"tool": {"component": "qa.process", "prompt": "x"}}


class TestShapeErrors:
    """Tests for rejected node shapes."""

    def test_non_mapping(self):
        with pytest.raises(NodeShapeError):
            normalize_node(["qa.process"])

    def test_multiple_component_keys(self):
        with pytest.raises(NodeShapeError, match="exactly one component key"):
            normalize_node({"qa.process": {}, "ai.greentic.echo": {}})

    def test_no_component_key(self):
        with pytest.raises(NodeShapeError):
            normalize_node({"routing": []})

    def test_bad_component_key(self):
        """Keys without a dot are not component ids."""
        with pytest.raises(BadComponentKeyError) as exc_info:
            normalize_node({"process": {}})
        assert exc_info.value.component == "process"
        assert "add_step" in str(exc_info.value)

    def test_unsupported_routing_key(self):
        with pytest.raises(RoutingError, match="unsupported routing key 'next'"):
            normalize_node({"qa.process": {}, "routing": [{"next": "a"}]})

    def test_routing_not_array(self):
        with pytest.raises(RoutingError):
            normalize_node({"qa.process": {}, "routing": {"to": "a"}})

    @pytest.mark.parametrize("shorthand", ["out", "reply"])
    def test_string_routing_rejected(self, shorthand):
        """Callers pass routing as an array; the string shorthand is a document form."""
        with pytest.raises(RoutingError, match="routing must be an array"):
            normalize_node({"qa.process": {}, "routing": shorthand})

    @pytest.mark.parametrize("flag", ["out", "reply"])
    def test_route_flag_must_be_boolean(self, flag):
        with pytest.raises(RoutingError, match=f"routing '{flag}' must be a boolean"):
            normalize_node({"qa.process": {}, "routing": [{"to": "x", flag: "false"}]})

    def test_route_target_must_be_string(self):
        with pytest.raises(RoutingError, match="routing 'to' must be a string"):
            normalize_node({"qa.process": {}, "routing": [{"to": 3}]})

    def test_operation_must_be_string(self):
        with pytest.raises(NodeShapeError):
            normalize_node({"qa.process": {}, "operation": 3})


class TestToolUnwrap:
    """Tests for legacy tool-wrapped nodes."""

    def test_unwraps_component(self):
        node = normalize_node(
            {
                "tool": {"component": "qa.process", "pack_alias": "qa", "operation": "run", "prompt": "hi"},
                "routing": [{"out": True}],
            }
        )
        assert node.component_id == "qa.process"
        assert node.pack_alias == "qa"
        assert node.operation == "run"
        assert node.payload == {"prompt": "hi"}
        assert node.routing == [Route(out=True)]

    def test_ambiguous_component(self):
        """The unwrapped id may not also be a sibling key."""
        with pytest.raises(NodeShapeError, match="ambiguous"):
            normalize_node({"tool": {"component": "qa.process"}, "qa.process": {}})

    def test_tool_without_component(self):
        with pytest.raises(NodeShapeError):
            normalize_node({"tool": {"prompt": "hi"}})


class TestComponentExec:
    """Tests for component.exec nodes."""

    def test_hoists_operation_from_payload(self):
        node = normalize_node({"component.exec": {"operation": " render ", "input": 1}})
        assert node.operation == "render"
        assert node.payload == {"input": 1}

    def test_top_level_operation_wins(self):
        node = normalize_node({"component.exec": {"operation": "inner"}, "operation": "outer"})
        assert node.operation == "outer"
        assert node.payload == {"operation": "inner"}

    def test_requires_operation(self):
        with pytest.raises(NodeShapeError, match="non-empty operation"):
            normalize_node({"component.exec": {"input": 1}})
