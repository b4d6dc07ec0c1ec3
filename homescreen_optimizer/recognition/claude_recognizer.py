"""
Claude Text Recognizer: Anthropic Claude vision for screenshot text.

Requires: pip install anthropic
Requires: ANTHROPIC_API_KEY environment variable

Cost: ~$0.01 per image
Speed: 2-3s per image
"""

import asyncio
import base64
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.recognition.recognition_types import (
    TEXT_RECOGNITION_PROMPT,
    RecognitionUnavailableError,
    candidates_from_response,
    load_image,
    parse_json_response,
)

logger = logging.getLogger(__name__)

try:
    import anthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    ANTHROPIC_AVAILABLE = False


class ClaudeTextRecognizer:
    """
    Claude-based text recognition.

    Best for:
    - Dense or low-contrast screenshots
    - Fallback when the local model is not running
    """

    COST_PER_CALL = 0.01

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: Optional[str] = None,
        max_tokens: int = 4096,
    ):
        if not ANTHROPIC_AVAILABLE:
            raise ImportError(
                "anthropic package not installed. Install with: pip install anthropic"
            )

        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY not set. Either:\n"
                "  1. Set ANTHROPIC_API_KEY environment variable, or\n"
                '  2. Use RecognizerRouter(provider="qwen") for free local Ollama'
            )

        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self.call_count = 0

    def recognize_sync(self, image_path: Union[str, Path]) -> List[LocatedTextCandidate]:
        """Blocking recognition; see recognize()."""
        data, media_type = load_image(image_path)
        image_data = base64.b64encode(data).decode("utf-8")

        self.call_count += 1
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": image_data,
                                },
                            },
                            {"type": "text", "text": TEXT_RECOGNITION_PROMPT},
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error(f"Claude recognition failed: {e}")
            raise RecognitionUnavailableError(f"Claude API error: {e}") from e

        raw_response = response.content[0].text
        candidates = candidates_from_response(parse_json_response(raw_response))
        logger.info(f"Claude: {len(candidates)} text items")
        return candidates

    async def recognize(self, image_path: Union[str, Path]) -> List[LocatedTextCandidate]:
        """
        Recognize located text in a screenshot.

        The Anthropic client is synchronous, so the call runs in the default
        executor.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.recognize_sync(image_path))
