import json
from types import SimpleNamespace

import pytest
import requests

import engine as engine_module
from engine import LLMError, PortfolioEngine

FLAT = '{"root":"c","elements":{"c":{"type":"Card","props":{"title":"Skills"},"children":[]}}}'


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["LLM_PROVIDER", "OPENAI_API_KEY", "HUGGINGFACE_API_KEY", "OPENAI_BASE_URL"]:
        monkeypatch.delenv(name, raising=False)


class FakeCompletions:
    def __init__(self, pieces, error=None):
        self.pieces = pieces
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return iter(
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=piece))])
            for piece in self.pieces
        )


def _hf_engine(monkeypatch, pieces, error=None):
    monkeypatch.setenv("LLM_PROVIDER", "hf")
    completions = FakeCompletions(pieces, error=error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return PortfolioEngine(client=client), completions


class FakeResponse:
    def __init__(self, lines, status_code=200, body=None):
        self.lines = lines
        self.status_code = status_code
        self.body = body or {}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def json(self):
        return self.body

    def iter_lines(self, decode_unicode=False):
        yield from self.lines


def _sse(*pieces):
    lines = []
    for piece in pieces:
        lines.append("data: " + json.dumps({"choices": [{"delta": {"content": piece}}]}))
        lines.append("")
    lines.append("data: [DONE]")
    return lines


def test_status_without_keys_is_disconnected():
    eng = PortfolioEngine()
    status = eng.get_status_info()
    assert status["ready"] is False
    assert status["provider"] == "openai"


def test_unknown_provider_falls_back_to_openai(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "bogus")
    assert PortfolioEngine().llm_provider == "openai"


def test_system_prompt_carries_catalog_and_profile():
    eng = PortfolioEngine(profile={"name": "Ada Lovelace", "skills": ["Analytical Engine"]})
    messages = eng.build_messages("Skills?")
    assert messages[0]["role"] == "system"
    assert "Ada Lovelace" in messages[0]["content"]
    assert "Analytical Engine" in messages[0]["content"]
    assert "InterestGrid" in messages[0]["content"]
    assert messages[1]["content"].startswith("User question: Skills?")


def test_offline_answer_is_canned():
    result = PortfolioEngine().answer("What are your most recent roles?")
    assert result["source"] == "canned"
    root = result["spec"]["elements"][result["spec"]["root"]]
    assert root["props"]["title"] == "Experience"


def test_hf_stream_yields_deltas(monkeypatch):
    eng, completions = _hf_engine(monkeypatch, ["Hel", None, "lo"])
    assert list(eng.stream_answer("hi")) == ["Hel", "lo"]
    assert completions.calls[0]["stream"] is True


def test_hf_stream_extracts_spec(monkeypatch):
    eng, _ = _hf_engine(monkeypatch, [FLAT[:30], FLAT[30:]])
    result = eng.answer("Skills?")
    assert result["source"] == "stream"
    assert result["spec"]["root"] == "c"
    assert "What is your preferred tech stack?" in result["follow_ups"]


def test_answer_keeps_tree_when_model_adds_closing_line(monkeypatch):
    eng, _ = _hf_engine(monkeypatch, [FLAT, "\n\nLet me know if you want more detail."])
    result = eng.answer("Skills?")
    assert result["source"] == "stream"
    assert result["spec"]["root"] == "c"


def test_hf_errors_become_summary_tree(monkeypatch):
    eng, _ = _hf_engine(monkeypatch, [], error=RuntimeError("model_not_supported"))
    with pytest.raises(LLMError):
        list(eng.stream_answer("hi"))
    result = eng.answer("hi")
    assert result["source"] == "canned"
    assert result["spec"]["elements"][result["spec"]["root"]]["props"]["title"] == "Quick summary"


def test_openai_stream_parses_sse(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    captured = {}

    def fake_post(url, headers=None, json=None, stream=False, timeout=None):
        captured.update(url=url, headers=headers, payload=json, stream=stream)
        return FakeResponse([": keep-alive", "data: not-json"] + _sse("Line one.\n", "- point A"))

    monkeypatch.setattr(engine_module.requests, "post", fake_post)
    eng = PortfolioEngine()
    assert list(eng.stream_answer("Skills?")) == ["Line one.\n", "- point A"]
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["payload"]["stream"] is True
    assert captured["stream"] is True

    result = eng.answer("Skills?")
    assert result["source"] == "fallback"


def test_openai_http_error_raises(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(
        engine_module.requests,
        "post",
        lambda *a, **kw: FakeResponse([], status_code=401, body={"error": {"message": "bad key"}}),
    )
    with pytest.raises(LLMError, match="bad key"):
        list(PortfolioEngine().stream_answer("hi"))


def test_openai_transport_error_raises(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    def fail(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(engine_module.requests, "post", fail)
    with pytest.raises(LLMError, match="refused"):
        list(PortfolioEngine().stream_answer("hi"))


def test_openai_missing_key_raises(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    with pytest.raises(LLMError, match="OPENAI_API_KEY"):
        list(PortfolioEngine().stream_answer("hi"))
