"""Shared test fixtures for the valuescore test suite."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from valuescore.config import ExtractorConfig
from valuescore.errors import PersistenceError
from valuescore.inference import InferenceClient
from valuescore.prompts import VALUE_CATEGORIES
from valuescore.storage import ExtractionStore, PersistedRecord


ENDPOINT_URL = "https://inference.test/generate"


def sample_scores() -> dict:
    """A well-formed model answer covering all ten categories."""
    scores = {name: {"count": 0, "confidence": 0.1} for name in VALUE_CATEGORIES}
    scores["benevolence"] = {"count": 1, "confidence": 0.9}
    scores["universalism"] = {"count": 1, "confidence": 0.8}
    return {"scores": scores}


class FakeStore(ExtractionStore):
    """In-memory store that records every save, or fails on demand."""

    backend_name = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: list[dict] = []

    def save(self, input_text, result, model_label):
        if self.fail:
            raise PersistenceError("Failed to save extraction: database unavailable")
        self.saved.append({"input_text": input_text, "result": result, "model": model_label})
        return PersistedRecord(
            id=len(self.saved),
            created_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
        )


class StubClient:
    """Inference client double; reply is a string or a function of the prompt."""

    def __init__(self, reply):
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt, api_key):
        self.prompts.append(prompt)
        if callable(self.reply):
            return self.reply(prompt)
        return self.reply


@pytest.fixture
def config():
    return ExtractorConfig(
        api_key="test-key",
        endpoint_url=ENDPOINT_URL,
        inference_timeout=2.0,
        host_deadline=5.0,
        max_new_tokens=256,
        model_label="test-model",
        database_url="sqlite://",
    )


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def failing_store():
    return FakeStore(fail=True)


@pytest.fixture
def upstream():
    """
    Build an InferenceClient backed by httpx.MockTransport.

    The handler receives the httpx.Request; every request is also appended
    to the returned client's `requests` list.
    """
    def make(handler, config):
        requests = []

        def recording(request):
            requests.append(request)
            return handler(request)

        client = InferenceClient(config, transport=httpx.MockTransport(recording))
        client.requests = requests
        return client

    return make


def generated(text: str) -> httpx.Response:
    """The usual Hugging Face reply: a one-element list of objects."""
    return httpx.Response(200, json=[{"generated_text": text}])


def scores_json() -> str:
    return json.dumps(sample_scores())
