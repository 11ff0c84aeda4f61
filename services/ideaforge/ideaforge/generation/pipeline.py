"""
Mockup generation: sketch + description in, photorealistic render out.

One request at a time goes to Gemini `generateContent`. Rate limits (429)
and network failures are retried with exponential backoff inside the
pipeline; everything else ends the attempt immediately. Callers always get a
GenerationOutcome back, never an exception, except for re-entering `submit`
while a request is still in flight.
"""
import asyncio
import base64
import binascii
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from ..config import MISSING_API_KEY_MESSAGE, Settings, get_settings
from ..utils import bytes_to_base64
from .errors import (
    ConfigurationError,
    GenerationError,
    RateLimitError,
    RequestInFlightError,
    ResponseFormatError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from .prompts import EMPTY_PROMPT_MESSAGE, GENERIC_FAILURE_MESSAGE, NO_IMAGE_MESSAGE, build_mockup_prompt

logger = logging.getLogger("ideaforge.generation")


class PipelineState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationRequest(BaseModel):
    prompt: str
    snapshot: bytes
    instructions: str
    attempt: int = 0
    delay_ms: int = 1000


class GenerationOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: Optional[bytes] = None
    error: Optional[GenerationError] = None
    message: Optional[str] = None  # what the user sees on failure

    @property
    def success(self) -> bool:
        return self.image is not None


def validate(prompt_text: Optional[str]) -> str:
    prompt = (prompt_text or "").strip()
    if not prompt:
        raise ValidationError(EMPTY_PROMPT_MESSAGE)
    return prompt


def build_payload(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "contents": [{
            "parts": [
                {"text": request.instructions},
                {
                    "inlineData": {
                        "mimeType": "image/png",
                        "data": bytes_to_base64(request.snapshot),
                    }
                },
            ]
        }],
        "generationConfig": {
            "responseModalities": ["IMAGE"]
        },
    }


def _first_candidate_parts(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return []
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def parse_response(data: Any) -> bytes:
    """Returns the PNG bytes of the first inline image part."""
    parts = _first_candidate_parts(data)

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and isinstance(inline.get("data"), str) and inline["data"]:
            try:
                return base64.b64decode(inline["data"], validate=True)
            except (binascii.Error, ValueError) as e:
                raise ResponseFormatError(f"Image payload is not valid base64: {e}") from e

    for part in parts:
        if isinstance(part.get("text"), str) and part["text"]:
            raise ResponseFormatError(part["text"])

    raise ResponseFormatError(NO_IMAGE_MESSAGE)


def user_message(error: GenerationError) -> str:
    """Credential and validation problems are shown as-is; the rest get a generic hint."""
    if isinstance(error, (ConfigurationError, ValidationError)):
        return error.message
    return GENERIC_FAILURE_MESSAGE


class GenerationPipeline:
    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.settings = settings
        self.http_client = http_client
        self.sleep = sleep
        self.state = PipelineState.IDLE
        self.in_flight = False

    def endpoint(self, settings: Settings) -> str:
        return f"{settings.api_base_url.rstrip('/')}/models/{settings.model_name}:generateContent"

    async def fetch_with_retry(self, client: httpx.AsyncClient, url: str, request: GenerationRequest,
                               settings: Settings) -> httpx.Response:
        payload = build_payload(request)
        params = {"key": settings.api_key}
        request.attempt = 0
        request.delay_ms = settings.initial_backoff_ms

        while True:
            self.state = PipelineState.REQUESTING
            try:
                response = await client.post(url, params=params, json=payload)
            except httpx.TransportError as e:
                error: GenerationError = TransportError(f"Network error: {e}")
            else:
                if response.is_success:
                    return response
                message = f"API Error: {response.reason_phrase} ({response.status_code})"
                if response.status_code != 429:
                    raise UpstreamError(message, status_code=response.status_code)
                error = RateLimitError(message)

            if request.attempt >= settings.max_retries:
                logger.error("Giving up after %d retries: %s", request.attempt, error.message)
                raise error

            request.attempt += 1
            self.state = PipelineState.RETRYING
            logger.warning("%s; retry %d/%d in %dms", error.message, request.attempt,
                           settings.max_retries, request.delay_ms)
            await self.sleep(request.delay_ms / 1000)
            request.delay_ms *= 2

    async def generate(self, prompt: str, snapshot: bytes, settings: Settings) -> bytes:
        if not settings.api_key:
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)

        request = GenerationRequest(
            prompt=prompt,
            snapshot=snapshot,
            instructions=build_mockup_prompt(prompt),
            delay_ms=settings.initial_backoff_ms,
        )
        url = self.endpoint(settings)

        if self.http_client is not None:
            response = await self.fetch_with_retry(self.http_client, url, request, settings)
        else:
            async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
                response = await self.fetch_with_retry(client, url, request, settings)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseFormatError(f"Response is not JSON: {e}") from e
        return parse_response(data)

    async def submit(self, prompt_text: Optional[str], snapshot: bytes) -> GenerationOutcome:
        if self.in_flight:
            raise RequestInFlightError("A mockup is already being generated.")

        try:
            prompt = validate(prompt_text)
        except ValidationError as e:
            return GenerationOutcome(error=e, message=user_message(e))

        settings = self.settings if self.settings is not None else get_settings()
        self.in_flight = True
        try:
            logger.info("Generating mockup (%d chars, %d byte sketch)", len(prompt), len(snapshot))
            image = await self.generate(prompt, snapshot, settings)
        except GenerationError as e:
            self.state = PipelineState.FAILED
            logger.error("Generation failed: %s", e.message)
            return GenerationOutcome(error=e, message=user_message(e))
        else:
            self.state = PipelineState.SUCCEEDED
            logger.info("Mockup generated (%d bytes)", len(image))
            return GenerationOutcome(image=image)
        finally:
            self.in_flight = False
            self.state = PipelineState.IDLE
