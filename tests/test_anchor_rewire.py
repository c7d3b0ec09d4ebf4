"""Tests for anchor resolution and routing rewrite."""

import pytest

from flowgraph.edit.anchor import EMPTY_ANCHOR, resolve_anchor
from flowgraph.edit.rewire import rewrite_routes, thread_anchor_routing
from flowgraph.ir.errors import AnchorNotFoundError, RoutingCycleError, RoutingError
from flowgraph.ir.types import NEXT_NODE_PLACEHOLDER, Route

PLACEHOLDER = Route(to=NEXT_NODE_PLACEHOLDER)


class TestResolveAnchor:
    """Tests for resolve_anchor()."""

    def test_explicit_anchor(self, chain_graph):
        resolution = resolve_anchor(chain_graph, "a")
        assert resolution.anchor == "a"
        assert resolution.precedes_entry is False

    def test_explicit_entry_anchor_does_not_precede(self, chain_graph):
        """Naming the entry node explicitly means "after it"."""
        resolution = resolve_anchor(chain_graph, "start")
        assert resolution.anchor == "start"
        assert resolution.precedes_entry is False

    def test_missing_anchor(self, chain_graph):
        with pytest.raises(AnchorNotFoundError, match="anchor node 'nope' not found"):
            resolve_anchor(chain_graph, "nope")

    def test_default_entry_precedes(self, chain_graph):
        resolution = resolve_anchor(chain_graph)
        assert resolution.anchor == "start"
        assert resolution.precedes_entry is True

    def test_empty_graph_sentinel(self, empty_graph):
        resolution = resolve_anchor(empty_graph)
        assert resolution.anchor == EMPTY_ANCHOR
        assert resolution.precedes_entry is False

    def test_dangling_entry_falls_back_to_first_node(self, chain_graph):
        chain_graph.entrypoints = {"default": "gone"}
        resolution = resolve_anchor(chain_graph)
        assert resolution.anchor == "start"
        assert resolution.precedes_entry is False

    def test_no_entrypoints_uses_first_node(self, chain_graph):
        chain_graph.entrypoints = {}
        assert resolve_anchor(chain_graph).anchor == "start"


class TestRewriteRoutes:
    """Tests for rewrite_routes()."""

    def test_placeholder_expanded_in_place(self):
        """All fallback routes replace the placeholder, keeping order and fields."""
        fallback = [Route(to="ok", status="Ok"), Route(reply=True)]
        provided = [Route(to="first"), PLACEHOLDER, Route(to="last")]
        result = rewrite_routes(provided, fallback, allow_cycles=False, anchor="anchor")
        assert result == [Route(to="first"), Route(to="ok", status="Ok"), Route(reply=True), Route(to="last")]

    def test_placeholder_with_empty_fallback(self):
        assert rewrite_routes([PLACEHOLDER], [], allow_cycles=False, anchor="a") == []

    def test_cycle_rejected(self):
        with pytest.raises(RoutingCycleError, match="cycle back to anchor 'a'"):
            rewrite_routes([Route(to="a")], [], allow_cycles=False, anchor="a", require_placeholder=False)

    def test_inherited_cycle_rejected(self):
        """A self-edge on the anchor is a cycle once inherited."""
        with pytest.raises(RoutingCycleError):
            rewrite_routes([PLACEHOLDER], [Route(to="a")], allow_cycles=False, anchor="a")

    def test_cycle_allowed(self):
        result = rewrite_routes([Route(to="a")], [], allow_cycles=True, anchor="a", require_placeholder=False)
        assert result == [Route(to="a")]

    def test_missing_placeholder_required(self):
        with pytest.raises(RoutingError, match=NEXT_NODE_PLACEHOLDER):
            rewrite_routes([Route(to="b")], [Route(to="c")], allow_cycles=False, anchor="a")

    def test_missing_placeholder_optional(self):
        """Without the requirement routes pass through unchanged, even empty."""
        assert rewrite_routes([Route(out=True)], [Route(to="c")], False, "a", require_placeholder=False) == [
            Route(out=True)
        ]
        assert rewrite_routes([], [Route(to="c")], False, "a", require_placeholder=False) == []

    def test_placeholder_match_is_exact(self):
        with pytest.raises(RoutingError):
            rewrite_routes([Route(to="next_node_placeholder")], [], allow_cycles=False, anchor="a")


class TestThreadAnchorRouting:
    """Tests for thread_anchor_routing()."""

    def test_points_anchor_at_new_node(self):
        assert thread_anchor_routing("mid", [Route(to="end")], False, "a") == [Route(to="mid")]

    def test_prior_self_edge_rejected(self):
        with pytest.raises(RoutingCycleError):
            thread_anchor_routing("mid", [Route(to="a")], False, "a")

    def test_prior_self_edge_allowed(self):
        assert thread_anchor_routing("mid", [Route(to="a")], True, "a") == [Route(to="mid")]
