"""
Usage Text Parser: usage-summary screenshot text -> (app, minutes/day).

Rows are rebuilt from label geometry, then each row is read either inline
("YouTube 2h 5m") or as separate name and duration cells.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence

from homescreen_optimizer.candidates import LabelCandidate, LocatedTextCandidate, best_per_key
from homescreen_optimizer.config import UsageParserSettings
from homescreen_optimizer.name_matcher import AppNameMatcher
from homescreen_optimizer.normalizer import WRAPPING_PUNCTUATION
from homescreen_optimizer.schema import ScreenTimeUsageEntry

logger = logging.getLogger(__name__)

_HOURS_MINUTES = re.compile(
    r"^(?:(\d{1,2}(?:\.\d+)?)\s*h(?:ours?|rs?|r)?)?\s*"
    r"(?:(\d{1,2})\s*m(?:in(?:ute)?s?)?)?$"
)
_CLOCK = re.compile(r"^(\d{1,2})[:.](\d{2})$")
_BARE_MINUTES = re.compile(r"^(\d{1,4})\s*m(?:ins?)?$")
_BARE_HOURS = re.compile(r"^(\d{1,3}(?:\.\d+)?)\s*h$")
_BULLETS = re.compile(r"[•·|]")


def parse_minutes(raw_text: str) -> Optional[float]:
    """
    Parse a duration cell into minutes.

    Accepts "1h 20m", "1 h 20 min", "2,5 h", "1:30", "1.30", "45m", "3h".
    Returns None for anything else, including zero durations.
    """
    text = re.sub(r"\s+", " ", (raw_text or "").lower()).strip()
    text = re.sub(r"(?<=\d),(?=\d)", ".", text)
    if not text:
        return None

    match = _HOURS_MINUTES.match(text)
    if match and (match.group(1) or match.group(2)):
        hours = float(match.group(1) or 0)
        minutes = int(match.group(2) or 0)
        total = hours * 60 + minutes
        return total if total > 0 else None

    match = _CLOCK.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if minutes >= 60:
            return None
        total = hours * 60 + minutes
        return float(total) if total > 0 else None

    match = _BARE_MINUTES.match(text)
    if match:
        minutes = int(match.group(1))
        return float(minutes) if minutes > 0 else None

    match = _BARE_HOURS.match(text)
    if match:
        hours = float(match.group(1))
        return hours * 60 if hours > 0 else None

    return None


def _average_confidence(row: Sequence[LocatedTextCandidate]) -> float:
    if not row:
        return 0.0
    return sum(c.confidence for c in row) / len(row)


class ScreenTimeUsageParser:
    """Recovers per-app daily minutes from usage-summary OCR output."""

    def __init__(
        self,
        settings: Optional[UsageParserSettings] = None,
        matcher: Optional[AppNameMatcher] = None,
    ):
        self.settings = settings or UsageParserSettings()
        self.matcher = matcher or AppNameMatcher()
        self._stop_terms = frozenset(t.lower() for t in self.settings.stop_terms)

    def parse(self, located_candidates: Iterable[LocatedTextCandidate]) -> List[ScreenTimeUsageEntry]:
        entries = []
        rows = self._group_rows(located_candidates)
        for row in rows:
            entry = self._parse_inline_row(row) or self._parse_split_row(row)
            if entry is not None:
                entries.append(entry)

        logger.debug(f"Parsed {len(entries)} usage entries from {len(rows)} rows")
        return self._dedupe(entries)

    def parse_plain(self, candidates: Iterable[LabelCandidate]) -> List[ScreenTimeUsageEntry]:
        """Line-by-line inline parsing for candidates without geometry."""
        entries = [
            e
            for e in (self._parse_inline(c.text, c.confidence) for c in candidates)
            if e is not None
        ]
        return self._dedupe(entries)

    # ==========================================================================
    # Row grouping
    # ==========================================================================

    def _group_rows(
        self, candidates: Iterable[LocatedTextCandidate]
    ) -> List[List[LocatedTextCandidate]]:
        kept = [c for c in candidates if self._is_usage_token(c.text)]
        ordered = sorted(kept, key=lambda c: (-c.center_y, c.center_x))

        rows: List[List[LocatedTextCandidate]] = []
        for candidate in ordered:
            if rows and abs(rows[-1][0].center_y - candidate.center_y) <= self.settings.row_tolerance:
                rows[-1].append(candidate)
            else:
                rows.append([candidate])

        return [sorted(row, key=lambda c: c.center_x) for row in rows]

    def _is_usage_token(self, text: str) -> bool:
        lowered = text.strip().lower()
        return bool(lowered) and lowered not in self._stop_terms

    # ==========================================================================
    # Row strategies
    # ==========================================================================

    def _parse_inline_row(self, row: List[LocatedTextCandidate]) -> Optional[ScreenTimeUsageEntry]:
        line = " ".join(c.text for c in row)
        return self._parse_inline(line, _average_confidence(row))

    def _parse_split_row(self, row: List[LocatedTextCandidate]) -> Optional[ScreenTimeUsageEntry]:
        if len(row) < 2:
            return None

        durations = [
            (minutes, index)
            for index, minutes in ((i, parse_minutes(c.text)) for i, c in enumerate(row))
            if minutes is not None
        ]
        if not durations:
            return None

        # max() keeps the leftmost cell on ties.
        best_minutes, best_index = max(durations, key=lambda d: (d[0], -d[1]))
        name = " ".join(c.text for i, c in enumerate(row) if i != best_index).strip()
        name = self._clean_name(name)
        if not self._is_likely_app_name(name):
            return None

        return ScreenTimeUsageEntry(
            app_name=name,
            minutes_per_day=best_minutes,
            confidence=_average_confidence(row),
        )

    def _parse_inline(self, text: str, confidence: float) -> Optional[ScreenTimeUsageEntry]:
        cleaned = re.sub(r"\s+", " ", _BULLETS.sub(" ", text or "")).strip()
        if not cleaned:
            return None

        tokens = cleaned.split(" ")
        # Longest suffix first.
        for start in range(len(tokens)):
            minutes = parse_minutes(" ".join(tokens[start:]))
            if minutes is None:
                continue
            name = self._clean_name(" ".join(tokens[:start]))
            if not self._is_likely_app_name(name):
                continue
            return ScreenTimeUsageEntry(
                app_name=name, minutes_per_day=minutes, confidence=confidence
            )

        return None

    def _clean_name(self, text: str) -> str:
        return text.strip().strip(WRAPPING_PUNCTUATION + " ")

    def _is_likely_app_name(self, text: str) -> bool:
        s = self.settings
        trimmed = text.strip()
        if not s.min_name_length <= len(trimmed) <= s.max_name_length:
            return False

        lowered = trimmed.lower()
        if lowered in self._stop_terms:
            return False
        if parse_minutes(lowered) is not None:
            return False
        return not re.fullmatch(r"\d+", lowered)

    # ==========================================================================
    # Deduplication
    # ==========================================================================

    def _dedupe(self, entries: List[ScreenTimeUsageEntry]) -> List[ScreenTimeUsageEntry]:
        best = best_per_key(
            entries,
            key=lambda e: self.matcher.canonical_name(e.app_name) or None,
            score=lambda e: e.confidence,
        )
        return sorted(
            (entry for entry, _ in best.values()),
            key=lambda e: (-e.minutes_per_day, e.app_name.casefold()),
        )
