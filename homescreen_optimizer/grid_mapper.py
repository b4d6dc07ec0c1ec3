"""
Home-Screen Grid Mapper: located OCR labels -> rows x columns app grid.

Pipeline for one page:
1. Filter labels that cannot be icon captions (widget text, headers, clock digits)
2. Infer cells covered by widgets from wide or calendar-like text
3. Snap admissible labels to grid or dock slots, best label per slot
4. Resolve apps detected in more than one slot
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from homescreen_optimizer.candidates import LocatedTextCandidate, best_per_key
from homescreen_optimizer.config import GridMapperSettings
from homescreen_optimizer.normalizer import clean_display_text
from homescreen_optimizer.schema import (
    SLOT_TYPE_ORDER,
    DetectedAppSlot,
    LayoutGridDetection,
    Slot,
    SlotType,
)

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

# Caption position inside a cell, as a fraction of row height from its top.
PREFERRED_LABEL_BAND = 0.72
LABEL_BAND_SIGMA = 0.24

DUPLICATE_ROW_BONUS = 0.04
TOP_BAND_ROWS = 2
MAX_WIDGET_ANCHOR_ROW = 2


@dataclass(frozen=True)
class _WidgetSignal:
    candidate: LocatedTextCandidate
    anchor: Cell
    large: bool
    phrase: bool


@dataclass(frozen=True)
class _Placement:
    detected: DetectedAppSlot
    fitness: float


class _GridGeometry:
    """Converts screen fractions to rows and columns for one grid size."""

    def __init__(self, settings: GridMapperSettings, rows: int, columns: int):
        self.settings = settings
        self.rows = rows
        self.columns = columns
        self.top = settings.app_grid_top_y
        self.bottom = settings.app_grid_bottom_y
        self.row_height = (self.bottom - self.top) / rows

    def clamped_row(self, y_from_top: float) -> int:
        raw = math.floor((y_from_top - self.top) / self.row_height)
        return min(max(raw, 0), self.rows - 1)

    def row_for(self, y_from_top: float) -> Optional[int]:
        if y_from_top < self.top - self.settings.grid_top_tolerance:
            return None
        if y_from_top > self.bottom:
            return None
        return self.clamped_row(y_from_top)

    def column_for(self, x: float) -> int:
        clamped = min(max(x, 0.0), 0.9999)
        return min(int(math.floor(clamped * self.columns)), self.columns - 1)

    def in_dock(self, y_from_top: float) -> bool:
        return self.settings.dock_top_y <= y_from_top <= self.settings.dock_bottom_y

    def row_start(self, row: int) -> float:
        return self.top + row * self.row_height


class HomeScreenGridMapper:
    """
    Maps one screenshot page of located labels to app slots.

    Usage:
        mapper = HomeScreenGridMapper()
        detection = mapper.map(candidates, page=0)
        for app in detection.apps:
            print(app.app_name, app.slot)
    """

    def __init__(self, settings: Optional[GridMapperSettings] = None):
        self.settings = settings or GridMapperSettings()
        self._ignored_exact = frozenset(t.lower() for t in self.settings.ignored_exact_terms)
        self._ignored_substrings = tuple(s.lower() for s in self.settings.ignored_substrings)
        self._widget_vocabulary = frozenset(
            t.lower() for t in self.settings.widget_vocabulary
        )

    def map(
        self,
        located_candidates: Iterable[LocatedTextCandidate],
        page: int = 0,
        rows: Optional[int] = None,
        columns: Optional[int] = None,
    ) -> LayoutGridDetection:
        rows = self.settings.rows if rows is None else rows
        columns = self.settings.columns if columns is None else columns
        if rows <= 0 or columns <= 0:
            logger.debug(f"Empty grid requested ({rows}x{columns}), returning no apps")
            return LayoutGridDetection(rows=max(0, rows), columns=max(0, columns))

        candidates = list(located_candidates)
        geometry = _GridGeometry(self.settings, rows, columns)

        locked = self._infer_widget_cells(candidates, geometry)
        admissible = [c for c in candidates if self.is_likely_home_screen_app_label(c)]

        placements = [
            p
            for p in (self._place(c, page, geometry, locked) for c in admissible)
            if p is not None
        ]
        best = best_per_key(
            placements,
            key=lambda p: p.detected.slot,
            score=lambda p: p.fitness,
        )
        winners = [placement for placement, _ in best.values()]
        winners, duplicate_cells = self._resolve_duplicates(winners, geometry)
        locked = locked | duplicate_cells

        logger.debug(
            f"Page {page}: {len(candidates)} candidates, {len(admissible)} admissible, "
            f"{len(winners)} apps, {len(locked)} widget-locked cells"
        )

        apps = sorted(
            (p.detected for p in winners),
            key=lambda d: (
                d.slot.page,
                SLOT_TYPE_ORDER[d.slot.type],
                d.slot.row,
                d.slot.column,
                d.app_name,
            ),
        )
        widget_locked_slots = [
            Slot(page=page, row=row, column=column, type=SlotType.WIDGET_LOCKED)
            for row, column in sorted(locked)
        ]
        return LayoutGridDetection(
            rows=rows,
            columns=columns,
            apps=apps,
            widget_locked_slots=widget_locked_slots,
        )

    # ==========================================================================
    # Label admissibility
    # ==========================================================================

    def is_likely_home_screen_app_label(self, candidate: LocatedTextCandidate) -> bool:
        s = self.settings
        lowered = candidate.text.strip().lower()
        if not lowered:
            return False
        if lowered in self._ignored_exact:
            return False
        if any(sub in lowered for sub in self._ignored_substrings):
            return False
        if re.fullmatch(r"\d{1,2}", lowered):
            return False

        words = lowered.split()
        if len(words) > 3:
            return False

        width = candidate.known_width
        height = candidate.known_height
        if width is not None and width > 0.34:
            return False
        if height is not None and height > 0.11:
            return False
        if width is not None and height is not None:
            aspect = width / max(height, 0.0001)
            if aspect > 13.5:
                return False
            if aspect > 11.5 and width > 0.16:
                return False

        y = candidate.y_from_top
        if y < 0.08 or y > 0.99:
            return False
        if width is not None and width > 0.14 and y < s.app_grid_top_y - s.header_tolerance:
            return False
        # Wallpaper gap between the last grid row and the dock.
        if s.app_grid_bottom_y < y < s.dock_top_y:
            return False
        if len(words) >= 2 and width is not None and width > 0.22:
            return False

        return True

    # ==========================================================================
    # Widget inference
    # ==========================================================================

    def _widget_signal(
        self, candidate: LocatedTextCandidate, geometry: _GridGeometry
    ) -> Optional[_WidgetSignal]:
        width = candidate.known_width or 0.0
        height = candidate.known_height or 0.0
        lowered = candidate.text.strip().lower()
        words = lowered.split()

        large = width > 0.24 or height > 0.07
        phrase = len(words) >= 2 and (width > 0.14 or height > 0.035)
        tokens = set(re.findall(r"[a-z]+", lowered))
        calendar = bool(tokens & self._widget_vocabulary) and (width > 0.10 or height > 0.03)
        if not (large or phrase or calendar):
            return None

        y = candidate.y_from_top
        if y < geometry.top or y > geometry.bottom:
            return None
        anchor_row = geometry.clamped_row(y)
        if anchor_row > MAX_WIDGET_ANCHOR_ROW:
            return None

        anchor = (anchor_row, geometry.column_for(candidate.center_x))
        return _WidgetSignal(candidate=candidate, anchor=anchor, large=large, phrase=phrase)

    def _covered_cells(self, signal: _WidgetSignal, geometry: _GridGeometry) -> Set[Cell]:
        candidate = signal.candidate
        half_width = (candidate.known_width or 0.0) / 2
        half_height = (candidate.known_height or 0.0) / 2
        y = candidate.y_from_top

        first_column = geometry.column_for(candidate.center_x - half_width)
        last_column = geometry.column_for(candidate.center_x + half_width)
        if (signal.large or signal.phrase) and first_column == last_column:
            if first_column + 0.5 < geometry.columns / 2:
                last_column = min(first_column + 1, geometry.columns - 1)
            else:
                first_column = max(first_column - 1, 0)

        first_row = geometry.clamped_row(y - half_height)
        last_row = geometry.clamped_row(y + half_height) + 1
        last_row = min(last_row, TOP_BAND_ROWS - 1, geometry.rows - 1)
        first_row = min(first_row, last_row)

        return {
            (row, column)
            for row in range(first_row, last_row + 1)
            for column in range(first_column, last_column + 1)
        }

    def _infer_widget_cells(
        self, candidates: List[LocatedTextCandidate], geometry: _GridGeometry
    ) -> Set[Cell]:
        signals = [
            s for s in (self._widget_signal(c, geometry) for c in candidates) if s is not None
        ]
        locked: Set[Cell] = set()
        for signal in signals:
            locked |= self._covered_cells(signal, geometry)

        if self._spans_top_band(signals):
            top_rows = min(TOP_BAND_ROWS, geometry.rows)
            locked |= {
                (row, column)
                for row in range(top_rows)
                for column in range(geometry.columns)
            }
            logger.debug("Widget stack spans the top band, locking the top rows")

        return locked

    def _spans_top_band(self, signals: List[_WidgetSignal]) -> bool:
        top_band = [s for s in signals if s.anchor[0] < TOP_BAND_ROWS]
        if len(top_band) < 2:
            return False

        strong_xs = [s.candidate.center_x for s in top_band if s.large]
        strong = len(strong_xs)
        xs = [s.candidate.center_x for s in top_band]
        spread = max(xs) - min(xs)

        if strong >= 2 and max(strong_xs) - min(strong_xs) >= 0.33:
            return True
        if spread >= 0.58:
            return True
        if strong >= 1 and spread >= 0.48:
            return True
        return strong >= 1 and len(top_band) >= 3 and spread >= 0.42

    # ==========================================================================
    # Slot assignment
    # ==========================================================================

    def _place(
        self,
        candidate: LocatedTextCandidate,
        page: int,
        geometry: _GridGeometry,
        locked: Set[Cell],
    ) -> Optional[_Placement]:
        name = clean_display_text(candidate.text)
        if not name:
            return None

        y = candidate.y_from_top
        column = geometry.column_for(candidate.center_x)

        if geometry.in_dock(y):
            slot = Slot(page=page, row=0, column=column, type=SlotType.DOCK)
            fitness = candidate.confidence
        else:
            row = geometry.row_for(y)
            if row is None or (row, column) in locked:
                return None
            slot = Slot(page=page, row=row, column=column, type=SlotType.APP)
            fitness = self._label_fitness(candidate, row, geometry)

        detected = DetectedAppSlot(
            app_name=name,
            confidence=candidate.confidence,
            slot=slot,
            label_center_x=candidate.center_x,
            label_center_y=candidate.center_y,
            label_width=candidate.known_width,
            label_height=candidate.known_height,
        )
        return _Placement(detected=detected, fitness=fitness)

    def _label_fitness(
        self, candidate: LocatedTextCandidate, row: int, geometry: _GridGeometry
    ) -> float:
        local = (candidate.y_from_top - geometry.row_start(row)) / geometry.row_height
        local = min(max(local, 0.0), 1.0)
        band = math.exp(
            -((local - PREFERRED_LABEL_BAND) ** 2) / (2 * LABEL_BAND_SIGMA ** 2)
        )
        return candidate.confidence * (0.70 + 0.30 * band)

    # ==========================================================================
    # Duplicate resolution
    # ==========================================================================

    def _resolve_duplicates(
        self, placements: List[_Placement], geometry: _GridGeometry
    ) -> Tuple[List[_Placement], Set[Cell]]:
        """Keep one slot per app name; lock app cells claimed by the losing copies."""

        def effective_row(p: _Placement) -> int:
            if p.detected.slot.type == SlotType.DOCK:
                return geometry.rows
            return p.detected.slot.row

        groups: Dict[str, List[_Placement]] = {}
        for placement in placements:
            name = re.sub(r"\s+", " ", placement.detected.app_name).strip().lower()
            groups.setdefault(name, []).append(placement)

        kept: List[_Placement] = []
        extra_locked: Set[Cell] = set()
        for entries in groups.values():
            if len(entries) == 1:
                kept.append(entries[0])
                continue

            ranked = sorted(
                entries,
                key=lambda p: (
                    -(p.fitness + DUPLICATE_ROW_BONUS * effective_row(p)),
                    -p.detected.confidence,
                    p.detected.slot.sort_key(),
                ),
            )
            winner = ranked[0]
            kept.append(winner)
            for loser in ranked[1:]:
                slot = loser.detected.slot
                if slot.type == SlotType.APP and effective_row(loser) <= effective_row(winner):
                    extra_locked.add((slot.row, slot.column))
            logger.debug(
                f"'{winner.detected.app_name}' seen in {len(entries)} slots, "
                f"kept {winner.detected.slot.row},{winner.detected.slot.column}"
            )

        return kept, extra_locked
