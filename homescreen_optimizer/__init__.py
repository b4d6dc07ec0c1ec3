"""
Home Screen Optimizer - Turn home-screen screenshots into a better layout.

Maps OCR text from home-screen screenshots to an app grid (with dock and
widget-covered cells), reads per-app usage from usage-summary screenshots,
and recommends a reachability-aware rearrangement for a user profile.

Usage:
    from homescreen_optimizer import HomeScreenGridMapper, ReachabilityAwareLayoutPlanner

    detection = HomeScreenGridMapper().map(candidates, page=0)
    result = ReachabilityAwareLayoutPlanner().generate(profile, apps, current)
    print(result.recommended_plan.score_breakdown.aggregate_score)

Screenshot Usage:
    from homescreen_optimizer import LayoutImportService

    service = LayoutImportService()  # OCR_PROVIDER=qwen for free local Ollama
    pages = await service.analyze_pages(["page1.png", "page2.png"])
    guide = service.generate_guide(profile, [p.detection for p in pages])
"""

from homescreen_optimizer.candidates import LabelCandidate, LocatedTextCandidate
from homescreen_optimizer.config import (
    GridMapperSettings,
    MatcherSettings,
    NormalizerSettings,
    Settings,
    UsageParserSettings,
    load_settings,
)
from homescreen_optimizer.normalizer import TextCandidateNormalizer
from homescreen_optimizer.name_matcher import AppNameMatcher, UsageNormalizer
from homescreen_optimizer.grid_mapper import HomeScreenGridMapper
from homescreen_optimizer.usage_parser import ScreenTimeUsageParser, parse_minutes
from homescreen_optimizer.optimizer import (
    GeneratedLayoutPlan,
    LayoutScorer,
    LayoutScoringContext,
    MovePlanBuilder,
    ReachabilityAwareLayoutPlanner,
    WhatIfSimulation,
)
from homescreen_optimizer.profiles import (
    CalibrationSample,
    OnboardingAnswers,
    OnboardingProfileBuilder,
    ReachabilityCalibrator,
)
from homescreen_optimizer.schema import (
    AppItem,
    DetectedAppSlot,
    GoalWeights,
    GripMode,
    GuidedApplyDraft,
    Handedness,
    ImportQuality,
    LayoutAssignment,
    LayoutGridDetection,
    LayoutPlan,
    MoveStep,
    Profile,
    ProfileContext,
    ReachabilityMap,
    ScoreBreakdown,
    ScreenTimeUsageEntry,
    SimulationSummary,
    Slot,
    SlotType,
)
from homescreen_optimizer.recognition import (
    ImageUnreadableError,
    RecognitionError,
    RecognitionUnavailableError,
)
from homescreen_optimizer.import_service import LayoutGuide, LayoutImportService, PageImport

__version__ = "0.1.0"

__all__ = [
    # OCR candidates
    "LabelCandidate",
    "LocatedTextCandidate",
    # Configuration
    "GridMapperSettings",
    "MatcherSettings",
    "NormalizerSettings",
    "Settings",
    "UsageParserSettings",
    "load_settings",
    # Ingestion
    "TextCandidateNormalizer",
    "AppNameMatcher",
    "UsageNormalizer",
    "HomeScreenGridMapper",
    "ScreenTimeUsageParser",
    "parse_minutes",
    # Optimization
    "GeneratedLayoutPlan",
    "LayoutScorer",
    "LayoutScoringContext",
    "MovePlanBuilder",
    "ReachabilityAwareLayoutPlanner",
    "WhatIfSimulation",
    # Profiles
    "CalibrationSample",
    "OnboardingAnswers",
    "OnboardingProfileBuilder",
    "ReachabilityCalibrator",
    # Schema
    "AppItem",
    "DetectedAppSlot",
    "GoalWeights",
    "GripMode",
    "GuidedApplyDraft",
    "Handedness",
    "ImportQuality",
    "LayoutAssignment",
    "LayoutGridDetection",
    "LayoutPlan",
    "MoveStep",
    "Profile",
    "ProfileContext",
    "ReachabilityMap",
    "ScoreBreakdown",
    "ScreenTimeUsageEntry",
    "SimulationSummary",
    "Slot",
    "SlotType",
    # Recognition errors
    "ImageUnreadableError",
    "RecognitionError",
    "RecognitionUnavailableError",
    # Service wrapper
    "LayoutGuide",
    "LayoutImportService",
    "PageImport",
]
