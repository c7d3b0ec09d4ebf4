"""
Test fixtures and utilities for flowgraph tests.

This module provides reusable fixtures: sample flow documents, a seeded
component catalog, and isolation of environment-driven edit settings.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to path so tests run without an installed package
_repo_root = Path(__file__).resolve().parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

from flowgraph.config.catalog import ComponentMetadata, MemoryCatalog  # noqa: E402
from flowgraph.config.edit_config import reset_config  # noqa: E402
from flowgraph.ir.loader import load_flow_from_str  # noqa: E402

# ============================================================================
# Sample Documents
# ============================================================================

CHAIN_FLOW = """\
id: main
type: messaging
start: start
nodes:
  start:
    qa.process:
      prompt: hello
    routing:
      - to: a
  a:
    qa.process:
      prompt: step a
    routing:
      - to: end
  end:
    ai.greentic.echo:
      message: bye
    routing: out
"""

BRANCH_FLOW = """\
id: branching
type: messaging
start: router
nodes:
  router:
    qa.process:
      prompt: route
    routing:
      - status: Ok
        to: ok_path
      - status: Err
        to: err_path
      - reply: true
      - out: true
  ok_path:
    ai.greentic.echo:
      message: ok
    routing: out
  err_path:
    ai.greentic.echo:
      message: err
    routing: out
"""

FAN_IN_FLOW = """\
id: fan-in
type: messaging
start: left
entrypoints:
  alt: right
nodes:
  left:
    qa.process:
      prompt: left
    routing:
      - to: join
  right:
    qa.process:
      prompt: right
    routing:
      - to: join
  join:
    qa.process:
      prompt: join
    routing:
      - to: done
  done:
    ai.greentic.echo:
      message: done
    routing: out
"""

EMPTY_FLOW = """\
id: empty
type: messaging
nodes: {}
"""


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_edit_config(monkeypatch):
    """Clear FLOWGRAPH_* env vars and the cached edit config around each test."""
    for var in (
        "FLOWGRAPH_ALLOW_CYCLES",
        "FLOWGRAPH_REQUIRE_PLACEHOLDER",
        "FLOWGRAPH_BACKUP_ON_WRITE",
        "FLOWGRAPH_DELETE_STRATEGY",
        "FLOWGRAPH_MULTI_PREDECESSOR",
        "FLOWGRAPH_CATALOG_PATHS",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def catalog():
    """Catalog knowing the components used by the sample flows."""
    return MemoryCatalog(
        [
            ComponentMetadata(id="qa.process", required_fields=("prompt",)),
            ComponentMetadata(id="ai.greentic.echo", required_fields=("message",)),
            ComponentMetadata(id="http.fetch", required_fields=("request.url",)),
            ComponentMetadata(id="component.exec"),
        ]
    )


@pytest.fixture
def chain_graph():
    """start -> a -> end(out)"""
    return load_flow_from_str(CHAIN_FLOW)


@pytest.fixture
def branch_graph():
    """router with Ok/Err/reply/out routes."""
    return load_flow_from_str(BRANCH_FLOW)


@pytest.fixture
def fan_in_graph():
    """left and right both route to join."""
    return load_flow_from_str(FAN_IN_FLOW)


@pytest.fixture
def empty_graph():
    return load_flow_from_str(EMPTY_FLOW)


@pytest.fixture
def flow_file(tmp_path):
    """CHAIN_FLOW written to disk."""
    path = tmp_path / "main.ygtc"
    path.write_text(CHAIN_FLOW, encoding="utf-8")
    return path
