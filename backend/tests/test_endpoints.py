import json

import httpx
import pytest
from fastapi.testclient import TestClient

from avatar_tutor.llm_client import LLMClient, get_llm_client
from avatar_tutor.main import app
from avatar_tutor.settings import Settings, settings

client = TestClient(app)

GEMINI_OK = {"candidates": [{"content": {"parts": [{"text": "Rain falls from clouds."}]}}]}


@pytest.fixture
def upstream():
	"""Route the app's provider client to a stub handler; returns the captured requests."""
	captured = []

	def install(handler, **overrides):
		values = {
			"gemini_api_key": "g-key",
			"gemini_api_url": "https://gemini.test/v1beta",
			"openai_api_key": None,
			"openai_base_url": "https://openai.test/v1/chat/completions",
			"fallback_on_error": False,
			"allow_raw_reply": False,
		}
		values.update(overrides)
		config = Settings(_env_file=None, **values)

		def recording(request):
			captured.append(request)
			return handler(request)

		async def _client():
			llm = LLMClient(config, transport=httpx.MockTransport(recording))
			try:
				yield llm
			finally:
				await llm.aclose()

		app.dependency_overrides[get_llm_client] = _client
		return captured

	yield install
	app.dependency_overrides.clear()


def test_root_ok():
	r = client.get("/")
	assert r.status_code == 200
	data = r.json()
	assert data["ok"] is True
	assert set(data["providers"]) == {"gemini", "openai"}


def test_chat_returns_reply(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/chat", json={"prompt": "Why does it rain?"})
	assert r.status_code == 200
	assert r.json() == {"ok": True, "reply": "Rain falls from clouds."}


def test_chat_accepts_text_field_and_params(upstream):
	captured = upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/chat", json={"text": "Why does it rain?", "temperature": 0.25, "max_tokens": 220, "top_p": 0.9})
	assert r.status_code == 200
	body = json.loads(captured[0].content)
	assert body["contents"][0]["parts"][0]["text"] == "Why does it rain?"
	assert body["generationConfig"] == {"temperature": 0.25, "maxOutputTokens": 220, "topP": 0.9}


@pytest.mark.parametrize("payload", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 123}, {"prompt": "", "text": "hi"}])
def test_chat_rejects_missing_prompt(upstream, payload):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/chat", json=payload)
	assert r.status_code == 400
	assert r.json() == {"ok": False, "error": "Missing 'prompt' in request body."}


def test_chat_upstream_error(upstream):
	upstream(lambda request: httpx.Response(503, json={"error": {"message": "overloaded"}}))
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 502
	data = r.json()
	assert data["ok"] is False
	assert data["error"] == "Gemini API error"
	assert data["status"] == 503
	assert data["body"] == {"error": {"message": "overloaded"}}


def test_chat_network_error(upstream):
	def handler(request):
		raise httpx.ConnectTimeout("timed out", request=request)

	upstream(handler)
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 500
	assert r.json()["error"] == "Server error calling Gemini"


def test_chat_without_provider(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK), gemini_api_key=None)
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 500
	assert "No LLM provider configured" in r.json()["error"]


def test_chat_openai_path(upstream):
	captured = upstream(
		lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "From OpenAI"}}]}),
		gemini_api_key=None,
		openai_api_key="o-key",
	)
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.json() == {"ok": True, "reply": "From OpenAI"}
	assert captured[0].url.host == "openai.test"


def test_chat_unrecognized_shape(upstream):
	upstream(lambda request: httpx.Response(200, json={"foo": "bar"}), allow_raw_reply=False)
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 502
	assert r.json() == {"ok": False, "error": "Unrecognized provider response", "body": {"foo": "bar"}}


def test_chat_unrecognized_shape_raw_reply_enabled(upstream):
	upstream(lambda request: httpx.Response(200, json={"foo": "bar"}), allow_raw_reply=True)
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 200
	assert r.json() == {"ok": True, "reply": '{"foo":"bar"}'}


def test_chat_empty_body(upstream):
	upstream(lambda request: httpx.Response(200, text="not json"))
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 502
	assert r.json()["error"] == "Empty response from provider"


def test_ask_composes_prompt_for_tier(upstream):
	captured = upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/ask", json={"text": "Why does it rain?", "tier": "class3", "subject": "science"})
	assert r.status_code == 200
	data = r.json()
	assert data["reply"] == "Rain falls from clouds."
	assert data["tier"] == "class3"
	assert data["subject"] == "science"
	assert data["generation"] == {"temperature": 0.2, "max_output_tokens": 120, "top_p": 0.9}

	body = json.loads(captured[0].content)
	prompt = body["contents"][0]["parts"][0]["text"]
	assert "Class 3 (about 8 years old)" in prompt
	assert "Focus on the subject: science." in prompt
	assert prompt.endswith("User question: Why does it rain?")
	assert body["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 120, "topP": 0.9}


def test_ask_unknown_tier_uses_general(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/ask", json={"text": "hi", "tier": "class12", "subject": "general"})
	data = r.json()
	assert data["tier"] == "general"
	assert data["subject"] is None


def test_ask_rejects_blank_text(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/ask", json={"text": "  ", "tier": "class3"})
	assert r.status_code == 400


def test_list_tiers():
	r = client.get("/api/tiers")
	assert r.status_code == 200
	keys = [t["key"] for t in r.json()["tiers"]]
	assert keys == ["general", "class3", "class7", "class10"]


def test_generate_returns_first_part(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/generate", json={"prompt": "hi", "temperature": 0.3, "max_tokens": 100})
	assert r.status_code == 200
	assert r.json() == {"reply": "Rain falls from clouds."}


def test_generate_strict_extraction(upstream):
	upstream(lambda request: httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]}))
	r = client.post("/api/generate", json={"prompt": "hi"})
	assert r.status_code == 500
	data = r.json()
	assert data["error"] == "No text content in model response"
	assert data["responseKeys"] == ["candidates"]
	assert data["hasCandidates"] is True
	assert data["candidatesLength"] == 1


def test_generate_passes_upstream_status(upstream):
	upstream(lambda request: httpx.Response(400, json={"error": {"message": "bad request"}}))
	r = client.post("/api/generate", json={"prompt": "hi"})
	assert r.status_code == 400
	assert r.json() == {"error": "Gemini API error", "details": "bad request", "status": 400}


def test_generate_requires_gemini_key(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK), gemini_api_key=None, openai_api_key="o-key")
	r = client.post("/api/generate", json={"prompt": "hi"})
	assert r.status_code == 500
	assert r.json() == {"error": "Missing GEMINI_API_KEY in environment variables"}


def test_generate_rejects_missing_prompt(upstream):
	upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/generate", json={"temperature": 0.2})
	assert r.status_code == 400


def test_tts_not_configured(monkeypatch):
	monkeypatch.setattr(settings, "tts_provider", None)
	r = client.post("/api/tts", json={"text": "hello"})
	assert r.status_code == 501
	assert "suggestion" in r.json()


def test_tts_requires_text():
	r = client.post("/api/tts", json={})
	assert r.status_code == 400


@pytest.mark.parametrize(
	"payload,field",
	[
		({"prompt": "hi", "temperature": "warm"}, "temperature"),
		({"prompt": "hi", "temperature": True}, "temperature"),
		({"prompt": "hi", "max_tokens": 12.5}, "max_tokens"),
		({"prompt": "hi", "max_tokens": 0}, "max_tokens"),
		({"prompt": "hi", "top_p": [0.9]}, "top_p"),
	],
)
def test_chat_rejects_bad_generation_options(upstream, payload, field):
	captured = upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/chat", json=payload)
	assert r.status_code == 400
	assert r.json() == {"ok": False, "error": f"Invalid '{field}' in request body."}
	assert captured == []


def test_chat_accepts_integral_float_max_tokens(upstream):
	captured = upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/chat", json={"prompt": "hi", "max_tokens": 200.0, "temperature": 1})
	assert r.status_code == 200
	assert json.loads(captured[0].content)["generationConfig"] == {"temperature": 1, "maxOutputTokens": 200}


def test_generate_rejects_bad_generation_options(upstream):
	captured = upstream(lambda request: httpx.Response(200, json=GEMINI_OK))
	r = client.post("/api/generate", json={"prompt": "hi", "max_tokens": "lots"})
	assert r.status_code == 400
	assert r.json() == {"error": "Missing or invalid 'max_tokens' in request body"}
	assert captured == []


def test_chat_too_deeply_nested_body(upstream):
	depth = 100000
	upstream(lambda request: httpx.Response(200, content=b"[" * depth + b"]" * depth))
	r = client.post("/api/chat", json={"prompt": "hi"})
	assert r.status_code == 502
	assert r.json()["error"] == "Empty response from provider"
