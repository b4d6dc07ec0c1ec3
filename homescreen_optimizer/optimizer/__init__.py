"""
Layout optimization: scoring, planning, move plans and what-if comparison.

Usage:
    from homescreen_optimizer.optimizer import ReachabilityAwareLayoutPlanner

    result = ReachabilityAwareLayoutPlanner().generate(profile, apps, current)
    moves = MovePlanBuilder().build_moves(current, result.recommended_plan.assignments)
"""

from homescreen_optimizer.optimizer.scorer import LayoutScorer, LayoutScoringContext
from homescreen_optimizer.optimizer.planner import (
    GeneratedLayoutPlan,
    ReachabilityAwareLayoutPlanner,
    heuristic_reachability,
    usage_scores,
)
from homescreen_optimizer.optimizer.move_plan import MovePlanBuilder
from homescreen_optimizer.optimizer.simulation import WhatIfSimulation

__all__ = [
    "LayoutScorer",
    "LayoutScoringContext",
    "GeneratedLayoutPlan",
    "ReachabilityAwareLayoutPlanner",
    "heuristic_reachability",
    "usage_scores",
    "MovePlanBuilder",
    "WhatIfSimulation",
]
