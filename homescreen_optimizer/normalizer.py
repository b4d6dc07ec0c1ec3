"""
Text Candidate Normalizer: clean raw OCR labels and keep one per text.

Pure functions over LabelCandidate values; no spatial awareness.
"""

import logging
import re
from typing import Iterable, List, Optional

from homescreen_optimizer.candidates import LabelCandidate, best_per_key
from homescreen_optimizer.config import NormalizerSettings
from homescreen_optimizer.schema import ImportQuality

logger = logging.getLogger(__name__)

WRAPPING_PUNCTUATION = "•·|()[]{}<>\"“”‘’:;,*"


def clean_display_text(text: str) -> str:
    """Collapse whitespace and strip punctuation wrapped around the label."""
    cleaned = re.sub(r"\s+", " ", text or "").strip()
    stripped = cleaned.strip(WRAPPING_PUNCTUATION + " ")
    return re.sub(r"\s+", " ", stripped)


class TextCandidateNormalizer:
    """
    Filters OCR noise out of plain label candidates.

    A label survives when its cleaned text is 2-24 characters, not purely
    digits, at most four words, made only of letters, digits and a few
    caption punctuation marks, and not a stop term.
    """

    def __init__(self, settings: Optional[NormalizerSettings] = None):
        self.settings = settings or NormalizerSettings()
        self._stop_terms = frozenset(term.lower() for term in self.settings.stop_terms)

    def normalize(self, candidate: LabelCandidate) -> Optional[LabelCandidate]:
        cleaned = clean_display_text(candidate.text)
        if not self._is_likely_app_label(cleaned):
            return None
        return LabelCandidate(text=cleaned, confidence=candidate.confidence)

    def process(self, candidates: Iterable[LabelCandidate]) -> List[LabelCandidate]:
        """Normalize, then keep the most confident candidate per lower-cased text."""
        candidates = list(candidates)
        survivors = [c for c in map(self.normalize, candidates) if c is not None]
        best = best_per_key(
            survivors,
            key=lambda c: c.text.lower(),
            score=lambda c: c.confidence,
        )
        logger.debug(
            f"Normalized {len(candidates)} candidates -> {len(survivors)} labels, "
            f"{len(best)} unique"
        )
        return sorted(
            (item for item, _ in best.values()),
            key=lambda c: (-c.confidence, c.text),
        )

    def estimate_import_quality(self, candidates: Iterable[LabelCandidate]) -> ImportQuality:
        processed = self.process(candidates)
        if not processed:
            return ImportQuality.LOW

        average = sum(c.confidence for c in processed) / len(processed)
        if len(processed) >= 12 and average >= 0.75:
            return ImportQuality.HIGH
        if len(processed) >= 6 and average >= 0.55:
            return ImportQuality.MEDIUM
        return ImportQuality.LOW

    def _is_likely_app_label(self, text: str) -> bool:
        s = self.settings
        if not s.min_length <= len(text) <= s.max_length:
            return False

        lowered = text.lower()
        if lowered in self._stop_terms:
            return False
        if re.fullmatch(r"\d+", lowered):
            return False
        if len(lowered.split(" ")) > s.max_words:
            return False

        return all(ch.isalnum() or ch in s.allowed_punctuation for ch in text)
