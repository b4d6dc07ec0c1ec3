"""
App Name Matcher: fuzzy canonicalization of OCR-noisy app names.

Used by the grid pipeline to snap labels onto a known-app vocabulary and by
the usage pipeline to merge OCR variants of the same app.
"""

import logging
import re
import unicodedata
from typing import Dict, Iterable, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from homescreen_optimizer.config import MatcherSettings

logger = logging.getLogger(__name__)

# OCR digit/letter confusions, applied only between two letters.
_DIGIT_CONFUSIONS = (
    (re.compile(r"(?<=[a-z])0(?=[a-z])"), "o"),
    (re.compile(r"(?<=[a-z])1(?=[a-z])"), "i"),
    (re.compile(r"(?<=[a-z])5(?=[a-z])"), "s"),
)


def _fold_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def edit_similarity(lhs: str, rhs: str) -> float:
    denominator = max(len(lhs), len(rhs))
    if denominator == 0:
        return 0.0
    return max(0.0, 1.0 - Levenshtein.distance(lhs, rhs) / denominator)


def token_overlap(lhs: str, rhs: str) -> float:
    """Jaccard overlap of word sets; edit similarity when both are one word."""
    lhs_tokens = set(lhs.split())
    rhs_tokens = set(rhs.split())
    if not lhs_tokens or not rhs_tokens:
        return 0.0
    if len(lhs_tokens) == 1 and len(rhs_tokens) == 1:
        return edit_similarity(lhs, rhs)
    union = lhs_tokens | rhs_tokens
    return len(lhs_tokens & rhs_tokens) / len(union)


def common_prefix_similarity(lhs: str, rhs: str) -> float:
    limit = min(len(lhs), len(rhs))
    if limit == 0:
        return 0.0
    count = 0
    for a, b in zip(lhs, rhs):
        if a != b:
            break
        count += 1
    return count / max(len(lhs), len(rhs))


class AppNameMatcher:
    """
    Canonicalizes and fuzzy-matches app labels.

    The alias table and known-app vocabulary come from MatcherSettings, so
    tests and callers can swap in their own vocabularies.
    """

    def __init__(self, settings: Optional[MatcherSettings] = None):
        self.settings = settings or MatcherSettings()
        self._aliases: Dict[str, str] = dict(self.settings.aliases)
        self._known_apps = tuple(self.settings.known_apps)

    def canonical_name(self, text: str) -> str:
        folded = _fold_diacritics(text or "").casefold()
        folded = folded.replace("&", " and ")
        folded = re.sub(r"[^a-z0-9 ]", " ", folded)
        for pattern, letter in _DIGIT_CONFUSIONS:
            folded = pattern.sub(letter, folded)
        folded = re.sub(r"\s+", " ", folded).strip()
        return self._aliases.get(folded, folded)

    def similarity(self, lhs: str, rhs: str) -> float:
        """Symmetric similarity in [0, 1] between two already-canonical names."""
        if not lhs or not rhs:
            return 0.0
        if lhs == rhs:
            return 1.0

        edit = edit_similarity(lhs, rhs)
        token = token_overlap(lhs, rhs)
        containment = 1.0 if (lhs in rhs or rhs in lhs) else 0.0
        prefix = common_prefix_similarity(lhs, rhs)

        weighted = 0.50 * edit + 0.30 * token + 0.20 * containment
        edit_dominant = 0.90 * edit + 0.10 * prefix
        return max(weighted, edit_dominant)

    def best_match(
        self,
        candidate: str,
        options: Iterable[str],
        min_score: Optional[float] = None,
    ) -> Optional[str]:
        """Return the option closest to candidate, or None below min_score."""
        threshold = self.settings.min_score if min_score is None else min_score
        canonical_candidate = self.canonical_name(candidate)
        if not canonical_candidate:
            return None

        best_option = None
        best_score = 0.0
        for option in options:
            score = self.similarity(canonical_candidate, self.canonical_name(option))
            if score > best_score:
                best_score = score
                best_option = option

        if best_score < threshold:
            return None
        return best_option

    def canonicalize_to_known_app(
        self, candidate: str, min_score: Optional[float] = None
    ) -> str:
        """Snap candidate onto the known-app vocabulary; unknown labels pass through."""
        threshold = self.settings.known_app_min_score if min_score is None else min_score
        best = self.best_match(candidate, self._known_apps, min_score=threshold)
        if best is None:
            return candidate
        if best != candidate:
            logger.debug(f"Canonicalized '{candidate}' -> '{best}'")
        return best

    @property
    def known_apps(self) -> Sequence[str]:
        return self._known_apps


class UsageNormalizer:
    """Scales per-app minutes into [0, 1] usage scores keyed by lower-cased name."""

    def canonical_name(self, text: str) -> str:
        return re.sub(r"\s+", " ", text or "").strip().lower()

    def normalize(self, minutes_by_name: Dict[str, float]) -> Dict[str, float]:
        cleaned: Dict[str, float] = {}
        for name, minutes in minutes_by_name.items():
            if minutes is None or minutes <= 0:
                continue
            key = self.canonical_name(name)
            if not key:
                continue
            cleaned[key] = float(minutes)

        if not cleaned:
            return {}

        top = max(cleaned.values())
        return {key: value / top for key, value in cleaned.items()}
