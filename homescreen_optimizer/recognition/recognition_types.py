"""
Shared types for text recognition providers.

Providers return LocatedTextCandidate lists. An empty list means the image
had no readable text; a provider that cannot run raises one of the errors
below instead.
"""

import base64
import binascii
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, Union, runtime_checkable

from homescreen_optimizer.candidates import LocatedTextCandidate

logger = logging.getLogger(__name__)


class RecognitionError(Exception):
    """Text recognition failed."""


class RecognitionUnavailableError(RecognitionError):
    """No provider could run: server down, model missing, API failure."""


class ImageUnreadableError(RecognitionError):
    """The image could not be read or decoded."""


@runtime_checkable
class TextRecognizer(Protocol):
    async def recognize(self, image_path: Union[str, Path]) -> List[LocatedTextCandidate]:
        ...


TEXT_RECOGNITION_PROMPT = """Read every piece of visible text in this phone screenshot.

For each text item (app icon captions, widget text, durations, headers), give:
- text: exactly as shown
- confidence: 0.0 to 1.0
- bounding_box: x, y, width, height as percentages (0-100) of the image, origin at the top-left

Return JSON only:
{"items": [{"text": "Maps", "confidence": 0.95, "bounding_box": {"x": 8, "y": 22, "width": 10, "height": 2}}]}

If there is no text, return {"items": []}."""

# (magic bytes, offset, media type)
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", 0, "image/png"),
    (b"\xff\xd8\xff", 0, "image/jpeg"),
    (b"GIF87a", 0, "image/gif"),
    (b"GIF89a", 0, "image/gif"),
    (b"WEBP", 8, "image/webp"),
)


def detect_media_type(data: bytes) -> Optional[str]:
    """Media type from the file signature, or None when unrecognized."""
    for magic, offset, media_type in _IMAGE_SIGNATURES:
        if data[offset:offset + len(magic)] == magic:
            if media_type == "image/webp" and not data.startswith(b"RIFF"):
                continue
            return media_type
    return None


def load_image(image_path: Union[str, Path]) -> Tuple[bytes, str]:
    """Read an image file and return (bytes, media_type)."""
    path = Path(image_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageUnreadableError(f"Cannot read image {path}: {e}") from e

    return data, _check_image_bytes(data, str(path))


def decode_image_b64(image_b64: str) -> Tuple[bytes, str]:
    """Decode a base64 image and return (bytes, media_type)."""
    try:
        data = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageUnreadableError(f"Invalid base64 image data: {e}") from e

    return data, _check_image_bytes(data, "base64 input")


def _check_image_bytes(data: bytes, source: str) -> str:
    if not data:
        raise ImageUnreadableError(f"Empty image: {source}")
    media_type = detect_media_type(data)
    if media_type is None:
        raise ImageUnreadableError(f"Unrecognized image format: {source}")
    return media_type


def parse_json_response(text: str) -> Dict[str, Any]:
    """Parse JSON from a model response (handles markdown wrappers)."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    json_match = re.search(r"```json\n?(.*?)\n?```", text, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError:
            pass

    raise RecognitionError(f"Unparseable recognition response: {text[:200]!r}")


def _clamp_unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def candidates_from_items(items: Iterable[Dict[str, Any]]) -> List[LocatedTextCandidate]:
    """
    Convert model items with percentage boxes (top-left origin) into
    normalized candidates with a bottom-left Y origin.

    Items without text or with a malformed box are skipped.
    """
    candidates = []
    skipped = 0
    for item in items:
        text = str(item.get("text") or "").strip()
        box = item.get("bounding_box") or {}
        if not text or not isinstance(box, dict):
            skipped += 1
            continue

        try:
            x = float(box["x"]) / 100
            y = float(box["y"]) / 100
            width = float(box.get("width", 0)) / 100
            height = float(box.get("height", 0)) / 100
            confidence = float(item.get("confidence", 0.5))
        except (KeyError, TypeError, ValueError):
            skipped += 1
            continue

        candidates.append(
            LocatedTextCandidate(
                text=text,
                confidence=_clamp_unit(confidence),
                center_x=_clamp_unit(x + width / 2),
                center_y=1.0 - _clamp_unit(y + height / 2),
                box_width=_clamp_unit(width) or None,
                box_height=_clamp_unit(height) or None,
            )
        )

    if skipped:
        logger.debug(f"Skipped {skipped} malformed recognition items")
    return candidates


def candidates_from_response(result: Dict[str, Any]) -> List[LocatedTextCandidate]:
    items = result.get("items", []) if isinstance(result, dict) else None
    if not isinstance(items, list):
        raise RecognitionError(f"Recognition response has no item list: {result!r:.200}")
    return candidates_from_items(i for i in items if isinstance(i, dict))
