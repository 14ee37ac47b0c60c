"""
Inference Client — One Bounded Call to the Generation Endpoint

Posts the composed prompt to a Hugging Face Inference Endpoint and turns
whatever payload comes back into a single string. The call is wrapped in a
wall-clock deadline; when it elapses the request is cancelled rather than
left to the host's own execution limit.

Different endpoint configurations answer in different shapes. The known
shapes form a closed set; anything else is an explicit error.
"""

import asyncio
import logging
import time
from enum import Enum

import httpx

from valuescore.config import ExtractorConfig
from valuescore.errors import (
    EmptyUpstreamResponseError,
    UnrecognizedShapeError,
    UpstreamError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

# Fields some custom handlers use instead of "generated_text"
ALTERNATE_TEXT_FIELDS = ("output", "text")


class ResponseShape(str, Enum):
    SINGLE_OBJECT = "single_object"          # {"generated_text": "..."}
    OBJECT_SEQUENCE = "object_sequence"      # [{"generated_text": "..."}]
    ALTERNATE_FIELD = "alternate_field"      # {"output": "..."} / {"text": "..."}
    CHAT_CHOICES = "chat_choices"            # {"choices": [{"message": {"content": "..."}}]}
    UNRECOGNIZED = "unrecognized"


def detect_shape(payload) -> ResponseShape:
    """Classify a decoded response payload into one of the known shapes."""
    if isinstance(payload, list):
        if payload and isinstance(payload[0], dict) and "generated_text" in payload[0]:
            return ResponseShape.OBJECT_SEQUENCE
        return ResponseShape.UNRECOGNIZED

    if not isinstance(payload, dict):
        return ResponseShape.UNRECOGNIZED
    if "generated_text" in payload:
        return ResponseShape.SINGLE_OBJECT
    if any(key in payload for key in ALTERNATE_TEXT_FIELDS):
        return ResponseShape.ALTERNATE_FIELD
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return ResponseShape.CHAT_CHOICES
    return ResponseShape.UNRECOGNIZED


def _text_from_single(payload: dict):
    return payload["generated_text"]


def _text_from_sequence(payload: list):
    return payload[0]["generated_text"]


def _text_from_alternate(payload: dict):
    for key in ALTERNATE_TEXT_FIELDS:
        if key in payload:
            return payload[key]
    return None


def _text_from_choices(payload: dict):
    choice = payload["choices"][0]
    message = choice.get("message")
    if isinstance(message, dict):
        return message.get("content")
    # Completion-style choices carry the text directly
    return choice.get("text")


_EXTRACTORS = {
    ResponseShape.SINGLE_OBJECT: _text_from_single,
    ResponseShape.OBJECT_SEQUENCE: _text_from_sequence,
    ResponseShape.ALTERNATE_FIELD: _text_from_alternate,
    ResponseShape.CHAT_CHOICES: _text_from_choices,
}


def normalize_generated_text(payload) -> str:
    """
    Project a decoded response payload onto the generated text.

    Raises UnrecognizedShapeError when the payload matches no known shape,
    and EmptyUpstreamResponseError when a known shape carries no string.
    An empty string is a valid (if unhelpful) generation and is returned.
    """
    shape = detect_shape(payload)
    if shape is ResponseShape.UNRECOGNIZED:
        raise UnrecognizedShapeError(
            "Inference endpoint returned an unrecognized response shape.",
            details=_preview(payload),
        )

    text = _EXTRACTORS[shape](payload)
    if not isinstance(text, str):
        raise EmptyUpstreamResponseError(
            "Inference endpoint returned no text content.",
            details=f"shape={shape.value}",
        )
    logger.debug("Normalized %s response (%d chars)", shape.value, len(text))
    return text


def _preview(payload, limit: int = 200) -> str:
    text = repr(payload)
    return text if len(text) <= limit else text[:limit] + "..."


class InferenceClient:
    """Client for a single text-generation endpoint."""

    def __init__(self, config: ExtractorConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    def build_payload(self, prompt: str) -> dict:
        """Request body for a deterministic generation that omits the prompt."""
        return {
            "inputs": prompt,
            "parameters": {
                "do_sample": False,
                "temperature": 0.0,
                "top_p": 1.0,
                "max_new_tokens": self.config.max_new_tokens,
                "return_full_text": False,
            },
        }

    async def generate(self, prompt: str, api_key: str) -> str:
        """
        Send one request and return the generated text.

        Exactly one attempt is made. The whole exchange (connect, send,
        read) shares a single deadline of config.inference_timeout seconds.
        """
        timeout = self.config.inference_timeout
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(self._post(prompt, api_key), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Inference call exceeded %.1fs deadline", timeout)
            raise UpstreamTimeoutError(timeout) from None
        except httpx.HTTPError as e:
            logger.error("Inference transport error: %s", e)
            raise UpstreamError(
                "Could not reach inference endpoint", details=str(e)
            ) from e

        elapsed = time.monotonic() - start
        logger.info("Inference endpoint responded status=%d time=%.3fs",
                    response.status_code, elapsed)

        if not response.is_success:
            raise UpstreamError(
                "Hugging Face Inference Endpoint error",
                status=response.status_code,
                details=response.text,
            )

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError(
                "Inference endpoint returned a non-JSON body",
                status=response.status_code,
                details=_preview(response.text),
            ) from None

        return normalize_generated_text(payload)

    async def _post(self, prompt: str, api_key: str) -> httpx.Response:
        # A fresh client per call keeps requests independent of each other
        async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
            return await client.post(
                self.config.endpoint_url,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(prompt),
            )
