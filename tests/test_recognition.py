"""Tests for the text recognition boundary (Qwen-VL, Claude and the router)."""

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.recognition import (
    ImageUnreadableError,
    QwenTextRecognizer,
    RecognitionError,
    RecognitionUnavailableError,
    RecognizerRouter,
    TextRecognizer,
    candidates_from_items,
    decode_image_b64,
    detect_media_type,
    get_text_recognizer,
    load_image,
    reset_text_recognizer,
)
from homescreen_optimizer.recognition.recognition_types import (
    candidates_from_response,
    parse_json_response,
)


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"

MAPS_ITEM = {
    "text": "Maps",
    "confidence": 0.95,
    "bounding_box": {"x": 10, "y": 20, "width": 10, "height": 4},
}


def fake_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    return response


def patched_async_client(method, **kwargs):
    """Patch httpx.AsyncClient so `method` on the entered client is an AsyncMock."""
    client = MagicMock()
    setattr(client, method, AsyncMock(**kwargs))
    patcher = patch("httpx.AsyncClient")
    client_cls = patcher.start()
    client_cls.return_value.__aenter__.return_value = client
    return patcher, client


# ---------------------------------------------------------------------------
# Image loading
# ---------------------------------------------------------------------------

class TestImageLoading:
    @pytest.mark.parametrize(
        "data, media_type",
        [
            (PNG_SIGNATURE, "image/png"),
            (b"\xff\xd8\xff\xe0rest", "image/jpeg"),
            (b"GIF89a....", "image/gif"),
            (b"GIF87a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"XXXX\x00\x00\x00\x00WEBPVP8 ", None),
            (b"%PDF-1.7", None),
            (b"", None),
        ],
    )
    def test_detect_media_type(self, data, media_type):
        assert detect_media_type(data) == media_type

    def test_load_image(self, png_file):
        data, media_type = load_image(png_file)
        assert data == png_file.read_bytes()
        assert media_type == "image/png"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageUnreadableError):
            load_image(tmp_path / "nope.png")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(ImageUnreadableError, match="Empty"):
            load_image(path)

    def test_not_an_image(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Maps 45m")
        with pytest.raises(ImageUnreadableError, match="Unrecognized"):
            load_image(path)

    def test_decode_b64(self, png_file):
        png_bytes = png_file.read_bytes()
        data, media_type = decode_image_b64(base64.b64encode(png_bytes).decode())
        assert data == png_bytes
        assert media_type == "image/png"

    @pytest.mark.parametrize("image_b64", ["not base64!!", "", base64.b64encode(b"text").decode()])
    def test_decode_b64_rejects(self, image_b64):
        with pytest.raises(ImageUnreadableError):
            decode_image_b64(image_b64)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

class TestResponseParsing:
    def test_parse_json_direct(self):
        assert parse_json_response('{"items": []}') == {"items": []}

    def test_parse_json_markdown(self):
        text = '```json\n{"items": [{"text": "Maps"}]}\n```'
        assert parse_json_response(text)["items"][0]["text"] == "Maps"

    def test_parse_json_bare_object(self):
        text = 'Here you go: {"items": []} hope that helps'
        assert parse_json_response(text) == {"items": []}

    def test_parse_json_invalid(self):
        with pytest.raises(RecognitionError):
            parse_json_response("no json here")

    def test_box_converted_to_bottom_origin(self):
        (candidate,) = candidates_from_items([MAPS_ITEM])
        assert candidate.text == "Maps"
        assert candidate.confidence == 0.95
        assert candidate.center_x == pytest.approx(0.15)
        assert candidate.center_y == pytest.approx(0.78)
        assert candidate.box_width == pytest.approx(0.10)
        assert candidate.box_height == pytest.approx(0.04)

    def test_zero_size_box_is_unknown(self):
        (candidate,) = candidates_from_items(
            [{"text": "Mail", "bounding_box": {"x": 50, "y": 50, "width": 0, "height": 0}}]
        )
        assert candidate.box_width is None
        assert candidate.box_height is None
        assert candidate.confidence == 0.5

    def test_values_clamped(self):
        (candidate,) = candidates_from_items(
            [{"text": "Edge", "confidence": 1.7, "bounding_box": {"x": 98, "y": 99, "width": 10, "height": 10}}]
        )
        assert candidate.confidence == 1.0
        assert candidate.center_x == 1.0
        assert candidate.center_y == 0.0

    def test_malformed_items_skipped(self):
        items = [
            {"text": "", "bounding_box": {"x": 1, "y": 1}},
            {"text": "No box"},
            {"text": "Bad box", "bounding_box": {"x": "left", "y": 1}},
            {"text": "List box", "bounding_box": [1, 2, 3, 4]},
            MAPS_ITEM,
        ]
        assert [c.text for c in candidates_from_items(items)] == ["Maps"]

    def test_response_without_item_list(self):
        with pytest.raises(RecognitionError):
            candidates_from_response({"items": "Maps"})
        with pytest.raises(RecognitionError):
            candidates_from_response([MAPS_ITEM])

    def test_response_missing_items_is_empty(self):
        assert candidates_from_response({}) == []


# ---------------------------------------------------------------------------
# QwenTextRecognizer
# ---------------------------------------------------------------------------

class TestQwenTextRecognizer:
    @pytest.fixture
    def recognizer(self):
        return QwenTextRecognizer(ollama_host="http://localhost:11434/", model="qwen2.5vl:7b")

    def test_satisfies_protocol(self, recognizer):
        assert isinstance(recognizer, TextRecognizer)
        assert recognizer.ollama_host == "http://localhost:11434"

    @pytest.mark.asyncio
    async def test_is_available_cached(self, recognizer):
        recognizer._available = True
        assert await recognizer.is_available() is True
        recognizer._available = False
        assert await recognizer.is_available() is False

    @pytest.mark.asyncio
    async def test_is_available_with_model(self, recognizer):
        patcher, client = patched_async_client(
            "get",
            return_value=fake_response(payload={"models": [{"name": "qwen2.5vl:7b"}]}),
        )
        try:
            assert await recognizer.is_available() is True
        finally:
            patcher.stop()
        client.get.assert_awaited_once_with("http://localhost:11434/api/tags")

    @pytest.mark.asyncio
    async def test_is_available_without_model(self, recognizer):
        patcher, _ = patched_async_client(
            "get", return_value=fake_response(payload={"models": [{"name": "llama3:8b"}]})
        )
        try:
            assert await recognizer.is_available() is False
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_is_available_when_down(self, recognizer):
        patcher, _ = patched_async_client("get", side_effect=httpx.ConnectError("refused"))
        try:
            assert await recognizer.is_available() is False
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_recognize_with_mock(self, recognizer, png_file):
        recognizer._available = True
        recognizer._call_ollama = AsyncMock(return_value={"items": [MAPS_ITEM]})

        candidates = await recognizer.recognize(png_file)

        assert candidates == [
            LocatedTextCandidate(
                text="Maps",
                confidence=0.95,
                center_x=pytest.approx(0.15),
                center_y=pytest.approx(0.78),
                box_width=pytest.approx(0.10),
                box_height=pytest.approx(0.04),
            )
        ]
        image_b64, prompt = recognizer._call_ollama.await_args.args
        assert base64.b64decode(image_b64) == png_file.read_bytes()
        assert "bounding_box" in prompt

    @pytest.mark.asyncio
    async def test_recognize_no_text(self, recognizer, png_file):
        recognizer._available = True
        recognizer._call_ollama = AsyncMock(return_value={"items": []})
        assert await recognizer.recognize(png_file) == []

    @pytest.mark.asyncio
    async def test_recognize_unavailable(self, recognizer, png_file):
        recognizer._available = False
        with pytest.raises(RecognitionUnavailableError):
            await recognizer.recognize(png_file)

    @pytest.mark.asyncio
    async def test_unreadable_image_checked_first(self, recognizer, tmp_path):
        recognizer._available = False
        with pytest.raises(ImageUnreadableError):
            await recognizer.recognize(tmp_path / "missing.png")

    @pytest.mark.asyncio
    async def test_call_ollama_parses_response(self, recognizer):
        payload = {"response": json.dumps({"items": [MAPS_ITEM]})}
        patcher, client = patched_async_client("post", return_value=fake_response(payload=payload))
        try:
            result = await recognizer._call_ollama("aW1n", "prompt")
        finally:
            patcher.stop()

        assert result["items"][0]["text"] == "Maps"
        body = client.post.await_args.kwargs["json"]
        assert body["model"] == "qwen2.5vl:7b"
        assert body["images"] == ["aW1n"]
        assert body["format"] == "json"
        assert recognizer.get_stats()["call_count"] == 1

    @pytest.mark.asyncio
    async def test_call_ollama_error_status(self, recognizer):
        patcher, _ = patched_async_client(
            "post", return_value=fake_response(status_code=500, text="model crashed")
        )
        try:
            with pytest.raises(RecognitionUnavailableError, match="500"):
                await recognizer._call_ollama("aW1n", "prompt")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_call_ollama_transport_error(self, recognizer):
        patcher, _ = patched_async_client("post", side_effect=httpx.ReadTimeout("slow"))
        try:
            with pytest.raises(RecognitionUnavailableError):
                await recognizer._call_ollama("aW1n", "prompt")
        finally:
            patcher.stop()

    def test_get_stats_initial(self, recognizer):
        stats = recognizer.get_stats()
        assert stats["call_count"] == 0
        assert stats["avg_time_ms"] == 0.0
        assert stats["model"] == "qwen2.5vl:7b"


# ---------------------------------------------------------------------------
# ClaudeTextRecognizer
# ---------------------------------------------------------------------------

class TestClaudeTextRecognizer:
    @pytest.fixture
    def anthropic(self):
        return pytest.importorskip("anthropic")

    @pytest.fixture
    def recognizer(self, anthropic):
        from homescreen_optimizer.recognition.claude_recognizer import ClaudeTextRecognizer

        recognizer = ClaudeTextRecognizer(api_key="test-key")
        recognizer.client = MagicMock()
        return recognizer

    def test_requires_api_key(self, anthropic, monkeypatch):
        from homescreen_optimizer.recognition.claude_recognizer import ClaudeTextRecognizer

        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            ClaudeTextRecognizer()

    @pytest.mark.asyncio
    async def test_recognize(self, recognizer, png_file):
        recognizer.client.messages.create.return_value = MagicMock(
            content=[MagicMock(text=json.dumps({"items": [MAPS_ITEM]}))]
        )

        candidates = await recognizer.recognize(png_file)

        assert [c.text for c in candidates] == ["Maps"]
        content = recognizer.client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["source"]["media_type"] == "image/png"
        assert recognizer.call_count == 1

    def test_api_error_is_unavailable(self, recognizer, png_file, anthropic):
        recognizer.client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        with pytest.raises(RecognitionUnavailableError):
            recognizer.recognize_sync(png_file)

    def test_unreadable_image(self, recognizer, tmp_path):
        with pytest.raises(ImageUnreadableError):
            recognizer.recognize_sync(tmp_path / "missing.png")
        recognizer.client.messages.create.assert_not_called()


# ---------------------------------------------------------------------------
# RecognizerRouter
# ---------------------------------------------------------------------------

class TestRecognizerRouter:
    @pytest.fixture
    def qwen(self):
        qwen = MagicMock()
        qwen.is_available = AsyncMock(return_value=True)
        qwen.recognize = AsyncMock(return_value=[LocatedTextCandidate("Maps", 0.9, 0.2, 0.7)])
        return qwen

    @pytest.fixture
    def claude(self):
        claude = MagicMock()
        claude.recognize = AsyncMock(return_value=[LocatedTextCandidate("Mail", 0.8, 0.4, 0.7)])
        return claude

    def router(self, provider, qwen=None, claude=None):
        router = RecognizerRouter(provider=provider)
        router._qwen_client = qwen
        router._claude_client = claude
        return router

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            RecognizerRouter(provider="tesseract")

    def test_provider_case_insensitive(self):
        assert RecognizerRouter(provider="QWEN").provider == "qwen"

    @pytest.mark.asyncio
    async def test_qwen_only(self, qwen, claude):
        router = self.router("qwen", qwen, claude)
        result = await router.recognize("page.png")
        assert result[0].text == "Maps"
        qwen.is_available.assert_not_awaited()
        claude.recognize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_qwen_errors_not_rerouted(self, qwen, claude):
        qwen.recognize.side_effect = RecognitionUnavailableError("down")
        router = self.router("qwen", qwen, claude)
        with pytest.raises(RecognitionUnavailableError):
            await router.recognize("page.png")
        claude.recognize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_claude_only(self, qwen, claude):
        router = self.router("claude", qwen, claude)
        result = await router.recognize("page.png")
        assert result[0].text == "Mail"
        qwen.recognize.assert_not_awaited()
        assert router.get_stats()["claude_cost_usd"] == 0.01

    @pytest.mark.asyncio
    async def test_auto_prefers_qwen(self, qwen, claude):
        router = self.router("auto", qwen, claude)
        result = await router.recognize("page.png")
        assert result[0].text == "Maps"
        claude.recognize.assert_not_awaited()
        assert router.get_stats()["qwen_calls"] == 1

    @pytest.mark.asyncio
    async def test_auto_falls_back_when_qwen_missing(self, qwen, claude):
        qwen.is_available.return_value = False
        router = self.router("auto", qwen, claude)
        result = await router.recognize("page.png")
        assert result[0].text == "Mail"
        qwen.recognize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auto_falls_back_when_qwen_fails(self, qwen, claude):
        qwen.recognize.side_effect = RecognitionUnavailableError("ollama 500")
        router = self.router("auto", qwen, claude)
        result = await router.recognize("page.png")

        assert result[0].text == "Mail"
        stats = router.get_stats()
        assert stats["errors"] == 1
        assert stats["total_calls"] == 2

    @pytest.mark.asyncio
    async def test_unreadable_image_not_retried(self, qwen, claude):
        qwen.recognize.side_effect = ImageUnreadableError("Empty image")
        router = self.router("auto", qwen, claude)
        with pytest.raises(ImageUnreadableError):
            await router.recognize("page.png")
        claude.recognize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_provider_available(self, qwen):
        qwen.is_available.return_value = False
        router = self.router("auto", qwen, None)
        with patch.object(RecognizerRouter, "claude", new=None):
            with pytest.raises(RecognitionUnavailableError):
                await router.recognize("page.png")


class TestTextRecognizerSingleton:
    @pytest.fixture(autouse=True)
    def fresh_singleton(self):
        reset_text_recognizer()
        yield
        reset_text_recognizer()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OCR_PROVIDER", "qwen")
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        monkeypatch.setenv("OLLAMA_MODEL", "qwen2.5vl:3b")

        router = get_text_recognizer()

        assert router.provider == "qwen"
        assert router.qwen.ollama_host == "http://gpu-box:11434"
        assert router.qwen.model == "qwen2.5vl:3b"

    def test_defaults(self, monkeypatch):
        for name in ("OCR_PROVIDER", "OLLAMA_HOST", "OLLAMA_MODEL", "CLAUDE_OCR_MODEL"):
            monkeypatch.delenv(name, raising=False)
        router = get_text_recognizer()
        assert router.provider == "auto"
        assert router.qwen.model == "qwen2.5vl:7b"

    def test_singleton_and_reset(self):
        first = get_text_recognizer(provider="claude")
        assert get_text_recognizer(provider="qwen") is first
        reset_text_recognizer()
        assert get_text_recognizer(provider="qwen") is not first

    def test_unknown_provider_from_environment(self, monkeypatch):
        monkeypatch.setenv("OCR_PROVIDER", "paddle")
        with pytest.raises(ValueError):
            get_text_recognizer()
