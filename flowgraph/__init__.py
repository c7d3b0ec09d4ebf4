"""
flowgraph - Flow-graph mutation and validation engine.

Subpackages:
- ir: typed flow graph, document projection, YAML loader, document manager
- edit: add-step (plan/apply), update-step, delete-step
- validator: post-edit validation and diagnostics
- config: component catalog and edit settings
- tools: flowgraph-edit CLI
"""

__version__ = "0.3.0"
