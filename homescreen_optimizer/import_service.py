"""
Layout Import Service: screenshots -> detected grid -> guided layout plan.

Features:
- Concurrent recognition of home-screen pages
- Import quality estimate per page
- Usage-summary parsing merged into per-app usage scores
- Recommended layout, move plan, what-if summary and a guided apply draft
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.config import Settings, load_settings
from homescreen_optimizer.grid_mapper import HomeScreenGridMapper
from homescreen_optimizer.name_matcher import AppNameMatcher, UsageNormalizer
from homescreen_optimizer.normalizer import TextCandidateNormalizer
from homescreen_optimizer.optimizer import (
    GeneratedLayoutPlan,
    MovePlanBuilder,
    ReachabilityAwareLayoutPlanner,
    WhatIfSimulation,
)
from homescreen_optimizer.recognition import TextRecognizer, get_text_recognizer
from homescreen_optimizer.schema import (
    AppItem,
    GuidedApplyDraft,
    ImportQuality,
    LayoutAssignment,
    LayoutGridDetection,
    MoveStep,
    Profile,
    ScreenTimeUsageEntry,
    SimulationSummary,
)
from homescreen_optimizer.usage_parser import ScreenTimeUsageParser

logger = logging.getLogger(__name__)

MIN_DETECTION_USAGE = 0.05


# ==============================================================================
# RESULT TYPES
# ==============================================================================


@dataclass
class PageImport:
    """One analyzed home-screen page."""

    page: int
    detection: LayoutGridDetection
    quality: ImportQuality
    candidate_count: int


@dataclass
class LayoutGuide:
    """Everything the guided apply flow needs for one profile."""

    apps: List[AppItem]
    current_assignments: List[LayoutAssignment]
    generated: GeneratedLayoutPlan
    move_steps: List[MoveStep]
    simulation: SimulationSummary
    draft: GuidedApplyDraft
    usage_by_app: Dict[str, float] = field(default_factory=dict)


# ==============================================================================
# SERVICE
# ==============================================================================


class LayoutImportService:
    """
    High-level import service wiring recognition to the layout optimizer.

    Recognition errors (RecognitionUnavailableError, ImageUnreadableError)
    propagate to the caller; a page with no readable text yields an empty
    detection.
    """

    def __init__(
        self,
        recognizer: Optional[TextRecognizer] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or load_settings()
        self.normalizer = TextCandidateNormalizer(self.settings.normalizer)
        self.matcher = AppNameMatcher(self.settings.matcher)
        self.grid_mapper = HomeScreenGridMapper(self.settings.grid)
        self.usage_parser = ScreenTimeUsageParser(self.settings.usage, matcher=self.matcher)
        self.usage_normalizer = UsageNormalizer()
        self.planner = ReachabilityAwareLayoutPlanner()
        self.move_builder = MovePlanBuilder()
        self.simulation = WhatIfSimulation()

        self._recognizer = recognizer
        self._initialization_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Resolve the default recognizer from the environment when none was given."""
        if self._recognizer is not None:
            return

        async with self._initialization_lock:
            if self._recognizer is None:
                self._recognizer = get_text_recognizer()

    @property
    def is_initialized(self) -> bool:
        return self._recognizer is not None

    # ==========================================================================
    # Screenshot analysis
    # ==========================================================================

    def map_page(self, candidates: Sequence[LocatedTextCandidate], page: int) -> PageImport:
        """Pure mapping step for already-recognized text."""
        quality = self.normalizer.estimate_import_quality(c.to_label() for c in candidates)
        detection = self.grid_mapper.map(candidates, page=page)
        return PageImport(
            page=page,
            detection=detection,
            quality=quality,
            candidate_count=len(candidates),
        )

    async def analyze_page(self, image_path: Union[str, Path], page: int = 0) -> PageImport:
        await self.initialize()

        start_time = time.time()
        try:
            candidates = await self._recognizer.recognize(image_path)
        except Exception as e:
            logger.error(f"Recognition failed for page {page} ({image_path}): {e}")
            raise

        result = self.map_page(candidates, page)
        elapsed = (time.time() - start_time) * 1000
        logger.info(
            f"Page {page}: {len(result.detection.apps)} apps, "
            f"{len(result.detection.widget_locked_slots)} widget cells, "
            f"quality={result.quality.value} ({elapsed:.0f}ms)"
        )
        return result

    async def analyze_pages(self, image_paths: Iterable[Union[str, Path]]) -> List[PageImport]:
        """Analyze pages concurrently; page numbers follow input order."""
        tasks = [self.analyze_page(path, page) for page, path in enumerate(image_paths)]
        return list(await asyncio.gather(*tasks))

    async def import_usage(self, image_path: Union[str, Path]) -> List[ScreenTimeUsageEntry]:
        await self.initialize()

        try:
            candidates = await self._recognizer.recognize(image_path)
        except Exception as e:
            logger.error(f"Recognition failed for usage screenshot {image_path}: {e}")
            raise

        entries = self.usage_parser.parse(candidates)
        logger.info(f"Usage screenshot: {len(entries)} apps")
        return entries

    # ==========================================================================
    # Guide generation
    # ==========================================================================

    def generate_guide(
        self,
        profile: Profile,
        detections: Iterable[LayoutGridDetection],
        usage_entries: Iterable[ScreenTimeUsageEntry] = (),
    ) -> LayoutGuide:
        """
        Build the recommended layout and guided apply draft.

        Raises:
            ValueError: two detected apps resolve to the same slot
        """
        detected = []
        seen_slots = {}
        for detection in detections:
            for app in detection.apps:
                if app.slot in seen_slots:
                    raise ValueError(
                        f"Slot {app.slot.model_dump()} claimed by both "
                        f"'{seen_slots[app.slot]}' and '{app.app_name}'"
                    )
                seen_slots[app.slot] = app.app_name
                detected.append(app)
        detected.sort(key=lambda d: d.slot.sort_key())

        usage_scores = self._usage_scores(usage_entries)

        apps = []
        current = []
        for app in detected:
            name = self.matcher.canonicalize_to_known_app(app.app_name)
            item = AppItem(
                display_name=name,
                usage_score=self._resolve_usage(name, app.confidence, usage_scores),
            )
            apps.append(item)
            current.append(LayoutAssignment(app_id=item.id, slot=app.slot))

        generated = self.planner.generate(profile, apps, current)
        plan = generated.recommended_plan
        moves = self.move_builder.build_moves(current, plan.assignments)
        summary = self.simulation.compare(
            generated.current_score, plan.score_breakdown, len(moves)
        )
        draft = GuidedApplyDraft(
            profile_id=profile.id,
            plan_id=plan.id,
            current_assignments=current,
            recommended_assignments=plan.assignments,
            move_steps=moves,
            app_names_by_id={item.id: item.display_name for item in apps},
        )

        logger.info(
            f"Guide for '{profile.name}': {len(apps)} apps, {len(moves)} moves, "
            f"score delta {summary.aggregate_score_delta:+.3f}"
        )
        return LayoutGuide(
            apps=apps,
            current_assignments=current,
            generated=generated,
            move_steps=moves,
            simulation=summary,
            draft=draft,
            usage_by_app=usage_scores,
        )

    def _usage_scores(self, entries: Iterable[ScreenTimeUsageEntry]) -> Dict[str, float]:
        minutes: Dict[str, float] = {}
        for entry in entries:
            key = self.usage_normalizer.canonical_name(entry.app_name)
            minutes[key] = max(minutes.get(key, 0.0), entry.minutes_per_day)
        return self.usage_normalizer.normalize(minutes)

    def _resolve_usage(
        self, name: str, confidence: float, usage_scores: Dict[str, float]
    ) -> float:
        key = self.usage_normalizer.canonical_name(name)
        if key in usage_scores:
            return usage_scores[key]

        match = self.matcher.best_match(
            name,
            usage_scores.keys(),
            min_score=self.settings.matcher.usage_match_min_score,
        )
        if match is not None:
            return usage_scores[match]
        return max(MIN_DETECTION_USAGE, confidence)

    def get_health(self) -> Dict[str, Any]:
        """Get service health status."""
        stats = {}
        if self._recognizer is not None and hasattr(self._recognizer, "get_stats"):
            stats = self._recognizer.get_stats()
        return {
            "name": "layout_import",
            "healthy": True,
            "status": "ready" if self.is_initialized else "not_initialized",
            "details": {
                "recognizer": type(self._recognizer).__name__ if self._recognizer else None,
                "grid": f"{self.settings.grid.rows}x{self.settings.grid.columns}",
                "recognizer_stats": stats,
            },
        }
