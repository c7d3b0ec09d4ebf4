"""
flowgraph/edit - Graph edits: add-step, update-step, delete-step.

Every edit takes a FlowGraph and returns a new one; inputs are never mutated.
"""

from .add_step import (
    AddStepPlan,
    AddStepRequest,
    PlanResult,
    apply_and_validate,
    apply_plan,
    plan_add_step,
)
from .anchor import AnchorResolution, resolve_anchor
from .delete_step import DeleteStrategy, MultiPredecessorPolicy, delete_step, find_predecessors
from .ids import generate_node_id
from .normalize import NormalizedNode, normalize_node
from .rewire import rewrite_routes
from .update_step import StepOverrides, update_and_validate, update_step

__all__ = [
    # Add-step
    "AddStepPlan",
    "AddStepRequest",
    "PlanResult",
    "apply_and_validate",
    "apply_plan",
    "plan_add_step",
    # Building blocks
    "AnchorResolution",
    "resolve_anchor",
    "generate_node_id",
    "NormalizedNode",
    "normalize_node",
    "rewrite_routes",
    # Update / delete
    "StepOverrides",
    "update_and_validate",
    "update_step",
    "DeleteStrategy",
    "MultiPredecessorPolicy",
    "delete_step",
    "find_predecessors",
]
