"""
Recognizer Router: Unified interface for text recognition providers.

Routes requests based on provider setting:
- "claude": Always use Claude (costs money, best quality)
- "qwen": Always use Qwen-VL via Ollama (free, local)
- "auto": Try Qwen first, fall back to Claude

Usage:
    from homescreen_optimizer.recognition import RecognizerRouter

    router = RecognizerRouter(provider="auto")
    candidates = await router.recognize("home_page_1.png")
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.recognition.qwen_recognizer import QwenTextRecognizer
from homescreen_optimizer.recognition.recognition_types import RecognitionUnavailableError

logger = logging.getLogger(__name__)

PROVIDERS = ("auto", "qwen", "claude")


@dataclass
class RecognizerStats:
    """Track recognition usage across providers."""

    claude_calls: int = 0
    qwen_calls: int = 0
    claude_cost_usd: float = 0.0
    errors: int = 0


class RecognizerRouter:
    """
    Routes recognition requests to Claude or Qwen-VL based on configuration.

    Image errors are never retried on another provider: a file one model
    cannot read, the other cannot read either.
    """

    CLAUDE_COST_PER_CALL = 0.01

    def __init__(
        self,
        provider: str = "auto",
        claude_model: str = "claude-sonnet-4-20250514",
        ollama_host: str = "http://localhost:11434",
        ollama_model: str = "qwen2.5vl:7b",
    ):
        self.provider = provider.lower()
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown OCR provider '{provider}', expected one of {PROVIDERS}")

        self.stats = RecognizerStats()
        self._claude_client = None
        self._qwen_client: Optional[QwenTextRecognizer] = None
        self._claude_model = claude_model
        self._ollama_host = ollama_host
        self._ollama_model = ollama_model

        logger.info(f"Text recognizer router: provider={self.provider}")

    @property
    def claude(self):
        """Get or create Claude recognizer (returns None if unavailable)."""
        if self._claude_client is None:
            try:
                from homescreen_optimizer.recognition.claude_recognizer import (
                    ClaudeTextRecognizer,
                )

                self._claude_client = ClaudeTextRecognizer(model=self._claude_model)
            except (ImportError, ValueError) as e:
                logger.warning(f"Claude recognizer not available: {e}")
                return None
        return self._claude_client

    @property
    def qwen(self) -> QwenTextRecognizer:
        """Get or create Qwen recognizer."""
        if self._qwen_client is None:
            self._qwen_client = QwenTextRecognizer(
                ollama_host=self._ollama_host,
                model=self._ollama_model,
            )
        return self._qwen_client

    async def recognize(self, image_path: Union[str, Path]) -> List[LocatedTextCandidate]:
        if self.provider == "qwen":
            self.stats.qwen_calls += 1
            return await self.qwen.recognize(image_path)

        if self.provider == "auto" and await self.qwen.is_available():
            try:
                self.stats.qwen_calls += 1
                return await self.qwen.recognize(image_path)
            except RecognitionUnavailableError as e:
                logger.warning(f"Qwen recognition failed, trying Claude: {e}")
                self.stats.errors += 1

        claude_client = self.claude
        if claude_client is None:
            raise RecognitionUnavailableError("No text recognition provider available")

        self.stats.claude_calls += 1
        self.stats.claude_cost_usd += self.CLAUDE_COST_PER_CALL
        return await claude_client.recognize(image_path)

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        return {
            "provider": self.provider,
            "claude_calls": self.stats.claude_calls,
            "qwen_calls": self.stats.qwen_calls,
            "total_calls": self.stats.claude_calls + self.stats.qwen_calls,
            "claude_cost_usd": round(self.stats.claude_cost_usd, 4),
            "errors": self.stats.errors,
        }


# Singleton
_text_recognizer: Optional[RecognizerRouter] = None


def get_text_recognizer(
    provider: Optional[str] = None,
    claude_model: Optional[str] = None,
    ollama_host: Optional[str] = None,
    ollama_model: Optional[str] = None,
) -> RecognizerRouter:
    """
    Get unified text recognizer (singleton).

    Reads from environment:
    - OCR_PROVIDER: "claude" | "qwen" | "auto" (default: "auto")
    - OLLAMA_HOST: Ollama server URL (default: http://localhost:11434)
    - OLLAMA_MODEL: Qwen model name (default: qwen2.5vl:7b)
    - CLAUDE_OCR_MODEL: Claude model (default: claude-sonnet-4-20250514)
    """
    global _text_recognizer

    if _text_recognizer is None:
        _text_recognizer = RecognizerRouter(
            provider=provider or os.getenv("OCR_PROVIDER", "auto"),
            claude_model=claude_model
            or os.getenv("CLAUDE_OCR_MODEL", "claude-sonnet-4-20250514"),
            ollama_host=ollama_host or os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            ollama_model=ollama_model or os.getenv("OLLAMA_MODEL", "qwen2.5vl:7b"),
        )

    return _text_recognizer


def reset_text_recognizer():
    """Reset singleton (for testing)."""
    global _text_recognizer
    _text_recognizer = None
