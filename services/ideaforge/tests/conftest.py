import io
import json

import httpx
import numpy as np
import pytest
from PIL import Image

from ideaforge.config import Settings
from ideaforge.generation.pipeline import GenerationPipeline
from ideaforge.sketch.session import SketchSession


def make_png(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def image_response(data: bytes, status_code: int = 200) -> httpx.Response:
    import base64
    body = {"candidates": [{"content": {"parts": [
        {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(data).decode("utf-8")}}
    ]}}]}
    return httpx.Response(status_code, json=body)


def text_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


class Recorder:
    """Replays queued responses (or exceptions) and keeps every request it saw."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def payload(self, i: int = 0) -> dict:
        return json.loads(self.requests[i].content)


@pytest.fixture
def settings():
    return Settings(api_key="test-key", canvas_height=60)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def make_pipeline(settings, fake_sleep):
    def _make(handler, settings_override=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GenerationPipeline(settings=settings_override or settings, http_client=client, sleep=fake_sleep)
    return _make


@pytest.fixture
def session(settings):
    s = SketchSession(settings, pipeline=GenerationPipeline(settings=settings))
    s.initialize(120)
    return s


def blank_pixels(width: int, height: int, scale: float = 1.0) -> np.ndarray:
    return np.full((int(round(height * scale)), int(round(width * scale)), 3), 255, dtype=np.uint8)
