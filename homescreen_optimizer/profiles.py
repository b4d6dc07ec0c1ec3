"""
Profiles: onboarding answers -> Profile, and reachability calibration.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from homescreen_optimizer.schema import (
    GoalWeights,
    GripMode,
    Handedness,
    Profile,
    ProfileContext,
    ReachabilityMap,
    Slot,
)

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAMES = {
    ProfileContext.WORKDAY: "Workday",
    ProfileContext.WEEKEND: "Weekend",
    ProfileContext.CUSTOM: "My Profile",
}


@dataclass
class OnboardingAnswers:
    preferred_name: str
    context: ProfileContext
    handedness: Handedness
    grip_mode: GripMode
    goal_weights: GoalWeights = field(default_factory=GoalWeights.default)


class OnboardingProfileBuilder:
    def build_profile(self, answers: OnboardingAnswers) -> Profile:
        name = answers.preferred_name.strip() or DEFAULT_PROFILE_NAMES[answers.context]
        return Profile(
            name=name,
            context=answers.context,
            handedness=answers.handedness,
            grip_mode=answers.grip_mode,
            goal_weights=self.normalize_weights(answers.goal_weights),
        )

    def normalize_weights(self, weights: GoalWeights) -> GoalWeights:
        """Rescale so the four weights sum to 1."""
        total = max(weights.total, 0.0001)
        return GoalWeights(
            utility=weights.utility / total,
            flow=weights.flow / total,
            aesthetics=weights.aesthetics / total,
            move_cost=weights.move_cost / total,
        )


@dataclass(frozen=True)
class CalibrationSample:
    """Time the user took to tap a target placed in slot."""

    slot: Slot
    response_time_ms: float


class ReachabilityCalibrator:
    """Turns tap response times into per-slot reachability weights.

    The slowest slot scores 0 and faster slots score proportionally higher.
    """

    def build_reachability_map(self, samples: Iterable[CalibrationSample]) -> ReachabilityMap:
        samples = list(samples)
        if not samples:
            return ReachabilityMap()

        max_time = max(max(s.response_time_ms for s in samples), 1.0)
        weights = {
            s.slot: max(0.0, 1.0 - s.response_time_ms / max_time) for s in samples
        }
        logger.debug(f"Calibrated {len(weights)} slots from {len(samples)} samples")
        return ReachabilityMap(slot_weights=weights)
