"""Layout scoring: weighted goal terms for one set of assignments."""

from dataclasses import dataclass, field
from typing import Dict, Iterable
from uuid import UUID

from homescreen_optimizer.schema import GoalWeights, LayoutAssignment, ScoreBreakdown, Slot


@dataclass(frozen=True)
class LayoutScoringContext:
    """Per-app usage and per-slot reachability, both in [0, 1]."""

    usage_by_app: Dict[UUID, float] = field(default_factory=dict)
    reachability_by_slot: Dict[Slot, float] = field(default_factory=dict)


class LayoutScorer:
    """
    Scores a layout as weight x signal for each goal.

    Only utility has a real signal today. Flow, aesthetics and move cost
    keep their weight multiplication so a real signal can be dropped into
    the matching method.
    """

    def score(
        self,
        assignments: Iterable[LayoutAssignment],
        weights: GoalWeights,
        context: LayoutScoringContext,
    ) -> ScoreBreakdown:
        assignments = list(assignments)
        return ScoreBreakdown(
            utility_score=weights.utility * self.utility_signal(assignments, context),
            flow_score=weights.flow * self.flow_signal(assignments, context),
            aesthetic_score=weights.aesthetics * self.aesthetic_signal(assignments, context),
            move_cost_penalty=weights.move_cost * self.move_cost_signal(assignments, context),
        )

    def utility_signal(self, assignments, context: LayoutScoringContext) -> float:
        return sum(
            context.usage_by_app.get(a.app_id, 0.0)
            * context.reachability_by_slot.get(a.slot, 0.0)
            for a in assignments
        )

    def flow_signal(self, assignments, context: LayoutScoringContext) -> float:
        return 0.0

    def aesthetic_signal(self, assignments, context: LayoutScoringContext) -> float:
        return 0.0

    def move_cost_signal(self, assignments, context: LayoutScoringContext) -> float:
        return 0.0
