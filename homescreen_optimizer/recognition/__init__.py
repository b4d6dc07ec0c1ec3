"""
Text recognition boundary: screenshots -> located text candidates.

Provides a unified interface to route recognition between providers:
- Claude (Anthropic API) - best quality, costs money
- Qwen-VL via Ollama - free, runs locally
- Auto mode - tries Ollama first, falls back to Claude

Usage:
    from homescreen_optimizer.recognition import RecognizerRouter

    router = RecognizerRouter(provider="auto")
    candidates = await router.recognize("home_page_1.png")
"""

from homescreen_optimizer.recognition.recognition_types import (
    ImageUnreadableError,
    RecognitionError,
    RecognitionUnavailableError,
    TextRecognizer,
    candidates_from_items,
    decode_image_b64,
    detect_media_type,
    load_image,
)
from homescreen_optimizer.recognition.qwen_recognizer import QwenTextRecognizer
from homescreen_optimizer.recognition.recognizer_router import (
    RecognizerRouter,
    RecognizerStats,
    get_text_recognizer,
    reset_text_recognizer,
)

# Claude recognizer is optional (requires anthropic package)
try:
    from homescreen_optimizer.recognition.claude_recognizer import ClaudeTextRecognizer
except ImportError:
    ClaudeTextRecognizer = None

__all__ = [
    "ImageUnreadableError",
    "RecognitionError",
    "RecognitionUnavailableError",
    "TextRecognizer",
    "candidates_from_items",
    "decode_image_b64",
    "detect_media_type",
    "load_image",
    "QwenTextRecognizer",
    "RecognizerRouter",
    "RecognizerStats",
    "get_text_recognizer",
    "reset_text_recognizer",
    "ClaudeTextRecognizer",
]
