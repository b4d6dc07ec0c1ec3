"""
Reachability-Aware Layout Planner.

Pairs the most used apps with the most reachable slots. The pairing is a
greedy rank match over the slots the user already occupies, so the
recommendation never adds or removes cells.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from homescreen_optimizer.optimizer.scorer import LayoutScorer, LayoutScoringContext
from homescreen_optimizer.schema import (
    AppItem,
    GripMode,
    Handedness,
    LayoutAssignment,
    LayoutPlan,
    Profile,
    ScoreBreakdown,
    Slot,
)

logger = logging.getLogger(__name__)

MIN_RANK_USAGE = 0.05


@dataclass
class GeneratedLayoutPlan:
    current_score: ScoreBreakdown
    recommended_plan: LayoutPlan


def usage_scores(apps: List[AppItem]) -> Dict[UUID, float]:
    """Explicit usage where present, otherwise a score derived from rank."""
    with_signal = sorted(
        (app for app in apps if app.usage_score is not None and app.usage_score >= 0),
        key=lambda app: -app.usage_score,
    )
    without_signal = [app for app in apps if app.usage_score is None or app.usage_score < 0]
    ranked = with_signal + without_signal
    denominator = max(len(ranked) - 1, 1)

    scores = {}
    for index, app in enumerate(ranked):
        if app.usage_score is not None and app.usage_score >= 0:
            scores[app.id] = app.usage_score
        else:
            scores[app.id] = max(MIN_RANK_USAGE, 1.0 - index / denominator)
    return scores


def heuristic_reachability(
    slot: Slot,
    rows: int,
    columns: int,
    handedness: Handedness,
    grip_mode: GripMode,
) -> float:
    """Closed-form thumb reach for a slot; lower rows and the dominant side score higher."""
    vertical = slot.row / (rows - 1) if rows > 1 else 1.0
    right_bias = slot.column / (columns - 1) if columns > 1 else 0.5
    left_bias = 1.0 - right_bias

    if handedness == Handedness.LEFT:
        hand = left_bias
    elif handedness == Handedness.RIGHT:
        hand = right_bias
    else:
        hand = max(left_bias, right_bias)

    if grip_mode == GripMode.ONE_HAND:
        reach = 0.7 * vertical + 0.3 * hand
    else:
        center_ease = 1.0 - abs(right_bias - 0.5) * 2
        reach = 0.45 * vertical + 0.35 * center_ease + 0.20 * hand
    return min(max(reach, 0.0), 1.0)


class ReachabilityAwareLayoutPlanner:
    """
    Produces a recommended layout and scores it against the current one.

    Usage:
        planner = ReachabilityAwareLayoutPlanner()
        result = planner.generate(profile, apps, current_assignments)
        print(result.recommended_plan.score_breakdown.aggregate_score)
    """

    def __init__(self, scorer: Optional[LayoutScorer] = None):
        self.scorer = scorer or LayoutScorer()

    def generate(
        self,
        profile: Profile,
        apps: Iterable[AppItem],
        current_assignments: Iterable[LayoutAssignment],
        rows: Optional[int] = None,
        columns: Optional[int] = None,
    ) -> GeneratedLayoutPlan:
        apps = list(apps)
        current_assignments = list(current_assignments)

        if not apps or not current_assignments:
            return GeneratedLayoutPlan(
                current_score=ScoreBreakdown.zero(),
                recommended_plan=LayoutPlan(
                    profile_id=profile.id, score_breakdown=ScoreBreakdown.zero()
                ),
            )

        slots = list(dict.fromkeys(a.slot for a in current_assignments))
        context = LayoutScoringContext(
            usage_by_app=usage_scores(apps),
            reachability_by_slot=self.reachability_scores(slots, profile, rows, columns),
        )

        current_score = self.scorer.score(current_assignments, profile.goal_weights, context)

        sorted_apps = sorted(
            apps,
            key=lambda app: (
                -context.usage_by_app.get(app.id, 0.0),
                app.display_name.casefold(),
            ),
        )
        sorted_slots = sorted(
            slots,
            key=lambda slot: (
                -context.reachability_by_slot.get(slot, 0.0),
                slot.page,
                -slot.row,
                slot.column,
            ),
        )
        recommended = [
            LayoutAssignment(app_id=app.id, slot=slot)
            for app, slot in zip(sorted_apps, sorted_slots)
        ]
        candidate_score = self.scorer.score(recommended, profile.goal_weights, context)

        logger.debug(
            f"Planned {len(recommended)} assignments: "
            f"{current_score.aggregate_score:.3f} -> {candidate_score.aggregate_score:.3f}"
        )

        plan = LayoutPlan(
            profile_id=profile.id,
            assignments=recommended,
            score_breakdown=candidate_score,
        )
        return GeneratedLayoutPlan(current_score=current_score, recommended_plan=plan)

    def reachability_scores(
        self,
        slots: List[Slot],
        profile: Profile,
        rows: Optional[int] = None,
        columns: Optional[int] = None,
    ) -> Dict[Slot, float]:
        """Calibrated weight when the profile has one, heuristic otherwise."""
        if rows is None:
            rows = max((max((s.row for s in slots), default=0)) + 1, 1)
        if columns is None:
            columns = max((max((s.column for s in slots), default=0)) + 1, 1)

        scores = {}
        for slot in slots:
            calibrated = profile.reachability_map.weight_for(slot)
            if calibrated is not None:
                scores[slot] = calibrated
            else:
                scores[slot] = heuristic_reachability(
                    slot, rows, columns, profile.handedness, profile.grip_mode
                )
        return scores
