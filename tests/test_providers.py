import time

import pytest

from conftest import FakeLLM, FakeMessage
from stockvoice.llm.providers import build_llm, complete, invoke_with_rate_limit, invoke_with_turn_timeout


def test_build_llm_without_key_returns_none(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    assert build_llm("openai") is None
    assert build_llm("openrouter") is None


def test_complete_returns_message_text():
    llm = FakeLLM('{"changes": []}')
    assert complete(llm, "instruction") == '{"changes": []}'
    assert llm.calls == ["instruction"]


def test_complete_joins_content_parts():
    class PartsLLM:
        def invoke(self, _instruction):
            return FakeMessage([{"type": "text", "text": '{"changes"'}, {"type": "text", "text": ": []}"}])

    assert complete(PartsLLM(), "x") == '{"changes": []}'


def test_turn_timeout_raises():
    with pytest.raises(TimeoutError):
        invoke_with_turn_timeout(lambda: time.sleep(1.0), timeout_seconds=0.05)


def test_turn_timeout_propagates_errors():
    def boom():
        raise RuntimeError("rate limited")

    with pytest.raises(RuntimeError):
        invoke_with_turn_timeout(boom, timeout_seconds=1.0)


def test_rate_limit_disabled_calls_directly(monkeypatch):
    monkeypatch.setenv("LLM_RATE_LIMIT_ENABLED", "false")
    assert invoke_with_rate_limit(lambda: 42) == 42
