"""Shared OCR candidate types for the ingestion modules."""

from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class LabelCandidate:
    """Recognized text without geometry."""

    text: str
    confidence: float


@dataclass(frozen=True)
class LocatedTextCandidate:
    """Recognized text with a normalized bounding box.

    Coordinates are screen fractions with the Y origin at the bottom
    (center_y == 1 is the top edge). A box dimension of None or <= 0 means
    the recognizer did not report it.
    """

    text: str
    confidence: float
    center_x: float
    center_y: float
    box_width: Optional[float] = None
    box_height: Optional[float] = None

    @property
    def known_width(self) -> Optional[float]:
        return self.box_width if self.box_width and self.box_width > 0 else None

    @property
    def known_height(self) -> Optional[float]:
        return self.box_height if self.box_height and self.box_height > 0 else None

    @property
    def y_from_top(self) -> float:
        return 1.0 - min(max(self.center_y, 0.0), 1.0)

    def to_label(self) -> LabelCandidate:
        return LabelCandidate(text=self.text, confidence=self.confidence)


def best_per_key(
    items: Iterable[T],
    key: Callable[[T], Optional[Hashable]],
    score: Callable[[T], float],
) -> Dict[Hashable, Tuple[T, float]]:
    """
    Fold items into a new {key: (best item, score)} mapping.

    Items whose key is None are skipped. On equal scores the earlier item
    stays, so the result only depends on input order.
    """
    best: Dict[Hashable, Tuple[T, float]] = {}
    for item in items:
        item_key = key(item)
        if item_key is None:
            continue
        item_score = score(item)
        existing = best.get(item_key)
        if existing is not None and existing[1] >= item_score:
            continue
        best[item_key] = (item, item_score)
    return best
