"""Tests for onboarding profile construction and reachability calibration."""

import pytest

from homescreen_optimizer.profiles import (
    CalibrationSample,
    OnboardingAnswers,
    OnboardingProfileBuilder,
    ReachabilityCalibrator,
)
from homescreen_optimizer.schema import (
    GoalWeights,
    GripMode,
    Handedness,
    ProfileContext,
    ReachabilityMap,
    Slot,
)


def answers(name="", context=ProfileContext.WORKDAY, weights=None):
    return OnboardingAnswers(
        preferred_name=name,
        context=context,
        handedness=Handedness.LEFT,
        grip_mode=GripMode.TWO_HAND,
        goal_weights=weights or GoalWeights.default(),
    )


class TestOnboardingProfileBuilder:
    @pytest.mark.parametrize(
        "context, expected",
        [
            (ProfileContext.WORKDAY, "Workday"),
            (ProfileContext.WEEKEND, "Weekend"),
            (ProfileContext.CUSTOM, "My Profile"),
        ],
    )
    def test_default_names(self, context, expected):
        profile = OnboardingProfileBuilder().build_profile(answers("   ", context))
        assert profile.name == expected
        assert profile.context == context

    def test_preferred_name_trimmed(self):
        profile = OnboardingProfileBuilder().build_profile(answers("  Commute "))
        assert profile.name == "Commute"
        assert profile.handedness == Handedness.LEFT
        assert profile.grip_mode == GripMode.TWO_HAND
        assert profile.reachability_map == ReachabilityMap()

    def test_weights_normalized(self):
        weights = GoalWeights(utility=2, flow=1, aesthetics=1, move_cost=0)
        profile = OnboardingProfileBuilder().build_profile(answers("Me", weights=weights))
        assert profile.goal_weights.utility == pytest.approx(0.5)
        assert profile.goal_weights.flow == pytest.approx(0.25)
        assert profile.goal_weights.total == pytest.approx(1.0)

    def test_zero_weights_stay_zero(self):
        weights = GoalWeights(utility=0, flow=0, aesthetics=0, move_cost=0)
        normalized = OnboardingProfileBuilder().normalize_weights(weights)
        assert normalized.total == 0.0


class TestReachabilityCalibrator:
    def test_fastest_slot_scores_highest(self):
        fast, slow = Slot(row=5, column=3), Slot(row=0, column=0)
        reach = ReachabilityCalibrator().build_reachability_map(
            [CalibrationSample(fast, 100), CalibrationSample(slow, 400)]
        )
        assert reach.weight_for(fast) == pytest.approx(0.75)
        assert reach.weight_for(slow) == 0.0
        assert reach.weight_for(Slot(row=2, column=2)) is None

    def test_empty(self):
        assert ReachabilityCalibrator().build_reachability_map([]) == ReachabilityMap()

    def test_sub_millisecond_times(self):
        slot = Slot(row=1, column=1)
        reach = ReachabilityCalibrator().build_reachability_map([CalibrationSample(slot, 0.5)])
        assert reach.weight_for(slot) == pytest.approx(0.5)

    def test_weights_in_unit_range(self):
        samples = [
            CalibrationSample(Slot(row=r, column=c), 150 + 40 * r + 15 * c)
            for r in range(6)
            for c in range(4)
        ]
        reach = ReachabilityCalibrator().build_reachability_map(samples)
        assert all(0.0 <= w <= 1.0 for w in reach.slot_weights.values())
