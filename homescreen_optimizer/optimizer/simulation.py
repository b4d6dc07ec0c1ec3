"""What-if comparison of two scored layouts."""

from homescreen_optimizer.schema import ScoreBreakdown, SimulationSummary


class WhatIfSimulation:
    def compare(
        self,
        current_score: ScoreBreakdown,
        candidate_score: ScoreBreakdown,
        move_count: int,
    ) -> SimulationSummary:
        return SimulationSummary(
            aggregate_score_delta=candidate_score.aggregate_score - current_score.aggregate_score,
            move_count=move_count,
        )
