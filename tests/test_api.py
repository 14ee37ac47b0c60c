"""
API endpoint tests.

Uses FastAPI TestClient for in-process testing. The inference endpoint is
replaced by an httpx.MockTransport and the store by an in-memory fake, so
the full request path runs without network or database.
"""
import asyncio
import json
import logging
from dataclasses import replace

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import generated, sample_scores, scores_json


@pytest.fixture
def make_api(config, fake_store, upstream):
    """
    Build a TestClient whose upstream answers with `handler`.

    Overrides get_config, get_store and get_client instead of touching
    the environment or a real database.
    """
    from valuescore.api import app, get_client, get_config, get_store

    def make(handler, store=None, cfg=None):
        cfg = cfg or config
        store = store or fake_store
        client = upstream(handler, cfg)
        app.dependency_overrides[get_config] = lambda: cfg
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_client] = lambda: client
        test_client = TestClient(app)
        test_client.upstream = client
        return test_client

    yield make
    app.dependency_overrides.clear()


# --- Health endpoint ---

class TestHealth:
    def test_returns_200(self, make_api):
        resp = make_api(lambda request: generated("")).get("/health")
        assert resp.status_code == 200

    def test_healthy_with_credential(self, make_api):
        data = make_api(lambda request: generated("")).get("/health").json()
        assert data == {
            "status": "healthy",
            "model": "test-model",
            "endpoint_configured": True,
            "store": "fake",
        }

    def test_degraded_without_credential(self, make_api, config):
        api = make_api(lambda request: generated(""), cfg=replace(config, api_key=None))
        data = api.get("/health").json()
        assert data["status"] == "degraded"
        assert data["endpoint_configured"] is False


# --- Extract endpoint: request validation ---

class TestExtractValidation:
    @pytest.mark.parametrize("body", [
        {},
        {"text": 42},
        {"text": None},
        {"text": ["a"]},
        {"other": "field"},
    ])
    def test_missing_or_non_string_text_returns_400(self, make_api, body):
        api = make_api(lambda request: generated("{}"))
        resp = api.post("/extract", json=body)
        assert resp.status_code == 400
        assert "text" in resp.json()["error"]
        assert api.upstream.requests == []

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_returns_400(self, make_api, text):
        api = make_api(lambda request: generated("{}"))
        resp = api.post("/extract", json={"text": text})
        assert resp.status_code == 400
        assert set(resp.json()) == {"error"}
        assert api.upstream.requests == []

    def test_malformed_body_returns_400(self, make_api):
        api = make_api(lambda request: generated("{}"))
        resp = api.post(
            "/extract", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400

    def test_rejected_body_not_logged(self, make_api, caplog):
        caplog.set_level(logging.INFO, logger="valuescore.api")
        api = make_api(lambda request: generated("{}"))
        resp = api.post("/extract", json={"text": ["my private diary entry"]})

        assert resp.status_code == 400
        assert "Rejected request body" in caplog.text
        assert "('body.text', 'string_type')" in caplog.text
        assert "my private diary entry" not in caplog.text

    def test_missing_credential_returns_500(self, make_api, config, fake_store):
        api = make_api(lambda request: generated("{}"), cfg=replace(config, api_key=None))
        resp = api.post("/extract", json={"text": "I love nature."})
        assert resp.status_code == 500
        assert "HUGGINGFACE_API_KEY" in resp.json()["error"]
        assert api.upstream.requests == []
        assert fake_store.saved == []


# --- Extract endpoint: end-to-end scenarios ---

class TestExtractScenarios:
    def test_array_wrapped_json(self, make_api, fake_store):
        api = make_api(lambda request: generated(scores_json()))
        resp = api.post("/extract", json={"text": "I love nature and helping others."})

        assert resp.status_code == 200
        data = resp.json()
        assert set(data) == {"output", "parseError", "persisted", "persistError"}
        assert json.loads(data["output"]) == sample_scores()
        assert data["parseError"] is None
        assert data["persisted"]["id"] == 1
        assert data["persisted"]["createdAt"].startswith("2026-01-01")
        assert data["persistError"] is None
        assert fake_store.saved[0]["input_text"] == "I love nature and helping others."
        assert fake_store.saved[0]["result"] == sample_scores()

    def test_prose_then_json(self, make_api):
        reply = "Okay, the text talks about nature.\n\n" + scores_json() + "\n\nDone."
        resp = make_api(lambda request: generated(reply)).post(
            "/extract", json={"text": "I love nature."}
        )

        assert resp.status_code == 200
        assert resp.json()["output"] == scores_json()
        assert resp.json()["parseError"] is None

    def test_prose_only(self, make_api, fake_store):
        resp = make_api(lambda request: generated("I am unable to produce scores.")).post(
            "/extract", json={"text": "I love nature."}
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["output"] == "I am unable to produce scores."
        assert data["parseError"] is not None
        assert data["persisted"] is not None
        assert fake_store.saved[0]["result"] is None

    def test_timeout_returns_504_without_persisting(self, make_api, config, fake_store):
        async def slow(request):
            await asyncio.sleep(5)
            return generated(scores_json())

        api = make_api(slow, cfg=replace(config, inference_timeout=0.05))
        resp = api.post("/extract", json={"text": "I love nature."})

        assert resp.status_code == 504
        assert "error" in resp.json()
        assert fake_store.saved == []

    def test_persistence_failure_still_200(self, make_api, failing_store):
        api = make_api(lambda request: generated(scores_json()), store=failing_store)
        resp = api.post("/extract", json={"text": "I love nature."})

        assert resp.status_code == 200
        data = resp.json()
        assert data["output"] == scores_json()
        assert data["parseError"] is None
        assert data["persisted"] is None
        assert "database unavailable" in data["persistError"]

    def test_prompt_echo_removed(self, make_api):
        def echo(request):
            prompt = json.loads(request.content)["inputs"]
            return generated(prompt + "\n\n" + scores_json())

        resp = make_api(echo).post("/extract", json={"text": "I love nature."})
        assert resp.json()["output"] == scores_json()


# --- Extract endpoint: upstream failures ---

class TestExtractUpstreamErrors:
    def test_non_2xx_returns_502(self, make_api, fake_store):
        api = make_api(lambda request: httpx.Response(429, text="Rate limit reached"))
        resp = api.post("/extract", json={"text": "I love nature."})

        assert resp.status_code == 502
        assert resp.json() == {
            "error": "Hugging Face Inference Endpoint error",
            "status": 429,
            "details": "Rate limit reached",
        }
        assert fake_store.saved == []

    def test_unrecognized_shape_returns_502(self, make_api):
        api = make_api(lambda request: httpx.Response(200, json={"unexpected": "shape"}))
        resp = api.post("/extract", json={"text": "I love nature."})

        assert resp.status_code == 502
        assert "unrecognized" in resp.json()["error"]

    def test_missing_text_field_returns_502(self, make_api):
        api = make_api(lambda request: httpx.Response(200, json=[{"generated_text": None}]))
        resp = api.post("/extract", json={"text": "I love nature."})

        assert resp.status_code == 502
        assert resp.json()["error"] == "Inference endpoint returned no text content."

    def test_connection_error_returns_502(self, make_api):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        resp = make_api(refuse).post("/extract", json={"text": "I love nature."})
        assert resp.status_code == 502
        assert resp.json()["status"] is None

    @pytest.mark.parametrize("payload", [
        {"generated_text": "{\"a\": 1}"},
        {"output": "{\"a\": 1}"},
        {"choices": [{"message": {"content": "{\"a\": 1}"}}]},
    ])
    def test_other_known_shapes(self, make_api, payload):
        api = make_api(lambda request: httpx.Response(200, json=payload))
        resp = api.post("/extract", json={"text": "I love nature."})
        assert resp.status_code == 200
        assert resp.json()["output"] == '{"a": 1}'
