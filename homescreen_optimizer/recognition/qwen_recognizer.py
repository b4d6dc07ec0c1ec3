"""
Qwen2.5-VL Text Recognizer: local vision model via Ollama.

Uses Ollama to run Qwen2.5-VL locally - free, no API keys needed.

Setup:
    brew install ollama && ollama serve
    ollama pull qwen2.5vl:7b

Models:
    - qwen2.5vl:3b  (3.2GB) - edge/lightweight
    - qwen2.5vl:7b  (6GB)   - recommended
    - qwen2.5vl:32b (21GB)  - high quality
"""

import base64
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.recognition.recognition_types import (
    TEXT_RECOGNITION_PROMPT,
    RecognitionUnavailableError,
    candidates_from_response,
    load_image,
    parse_json_response,
)

logger = logging.getLogger(__name__)


class QwenTextRecognizer:
    """
    Qwen2.5-VL via Ollama for screenshot text recognition.

    Speed: 3-10s per image (depending on hardware)
    """

    def __init__(
        self,
        ollama_host: str = "http://localhost:11434",
        model: str = "qwen2.5vl:7b",
        timeout: float = 120.0,
    ):
        self.ollama_host = ollama_host.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.call_count = 0
        self.total_time_ms = 0.0
        self._available: Optional[bool] = None

    async def is_available(self) -> bool:
        """Check if Ollama is running and the model is pulled."""
        if self._available is not None:
            return self._available

        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.ollama_host}/api/tags")
        except httpx.HTTPError as e:
            logger.warning(f"Ollama not available at {self.ollama_host}: {e}")
            self._available = False
            return False

        if response.status_code != 200:
            self._available = False
            return False

        models = response.json().get("models", [])
        model_names = [m.get("name", "") for m in models]
        self._available = any(
            self.model in name or name.startswith("qwen2.5vl") for name in model_names
        )

        if not self._available:
            logger.warning(
                f"Qwen-VL model '{self.model}' not found in Ollama "
                f"(available: {model_names}); run: ollama pull {self.model}"
            )
        return self._available

    async def recognize(self, image_path: Union[str, Path]) -> List[LocatedTextCandidate]:
        """
        Recognize located text in a screenshot.

        Raises:
            ImageUnreadableError: the image cannot be read
            RecognitionUnavailableError: Ollama or the model is not usable
            RecognitionError: the model reply cannot be parsed
        """
        data, _ = load_image(image_path)
        if not await self.is_available():
            raise RecognitionUnavailableError(
                f"Qwen-VL model '{self.model}' is not available at {self.ollama_host}"
            )

        start_time = time.time()
        image_b64 = base64.b64encode(data).decode("utf-8")
        result = await self._call_ollama(image_b64, TEXT_RECOGNITION_PROMPT)
        candidates = candidates_from_response(result)

        elapsed = (time.time() - start_time) * 1000
        self.total_time_ms += elapsed
        logger.info(f"Qwen-VL: {len(candidates)} text items ({elapsed:.0f}ms)")
        return candidates

    async def _call_ollama(self, image_b64: str, prompt: str) -> Dict[str, Any]:
        """Make API call to Ollama."""
        self.call_count += 1

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.ollama_host}/api/generate",
                    json={
                        "model": self.model,
                        "prompt": prompt,
                        "images": [image_b64],
                        "stream": False,
                        "format": "json",
                    },
                )
        except httpx.HTTPError as e:
            raise RecognitionUnavailableError(f"Ollama request failed: {e}") from e

        if response.status_code != 200:
            raise RecognitionUnavailableError(
                f"Ollama error: {response.status_code} - {response.text}"
            )

        response_text = response.json().get("response", "{}")
        return parse_json_response(response_text)

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        return {
            "call_count": self.call_count,
            "total_time_ms": self.total_time_ms,
            "avg_time_ms": self.total_time_ms / max(self.call_count, 1),
            "model": self.model,
        }
