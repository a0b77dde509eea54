import asyncio
from types import SimpleNamespace

import pytest

from core.config import InterviewSettings
from logs import metrics
from nlp.exceptions import GenerationTimeoutError, LLMError
from services.llm_service import LLMService


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    async def create(self, **params):
        self.requests.append(dict(params))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, float):
            await asyncio.sleep(reply)
            return _response("late")
        return _response(reply)


def _service(replies, **overrides):
    overrides.setdefault("LLM_MODEL", "gpt-4o-mini")
    settings = InterviewSettings(LLM_API_KEY="sk-test", **overrides)
    service = LLMService(settings)
    completions = FakeCompletions(replies)
    service.async_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return service, completions


async def test_complete_sends_system_and_user_messages():
    service, completions = _service(["What is CAP?"])
    reply = await service.complete("sys", "user", 0.7, 150)

    assert reply == "What is CAP?"
    request = completions.requests[0]
    assert request["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "user"},
    ]
    assert request["max_tokens"] == 150
    assert request["temperature"] == 0.7
    assert request["model"] == "gpt-4o-mini"


async def test_missing_api_key_raises():
    service = LLMService(InterviewSettings(LLM_API_KEY=""))
    with pytest.raises(LLMError):
        await service.complete("sys", "user")


async def test_upstream_error_raises_llm_error():
    service, _ = _service([RuntimeError("boom")])
    with pytest.raises(LLMError) as exc_info:
        await service.complete("sys", "user")
    assert isinstance(exc_info.value.cause, RuntimeError)
    assert metrics.get("llm_errors") == 1


async def test_empty_content_raises():
    service, _ = _service([""])
    with pytest.raises(LLMError):
        await service.complete("sys", "user")


async def test_timeout_raises_timeout_error():
    service, _ = _service([0.5], LLM_TIMEOUT=0.01)
    with pytest.raises(GenerationTimeoutError):
        await service.complete("sys", "user")


async def test_retries_with_max_completion_tokens():
    error = RuntimeError("Unsupported parameter: 'max_tokens' is not supported with this model. "
                         "Use 'max_completion_tokens' instead.")
    service, completions = _service([error, "ok"])

    assert await service.complete("sys", "user", 0.7, 200) == "ok"
    assert "max_tokens" not in completions.requests[1]
    assert completions.requests[1]["max_completion_tokens"] == 200


async def test_retries_without_temperature():
    error = RuntimeError("Unsupported value: 'temperature' does not support 0.7. Only the default (1) value is supported.")
    service, completions = _service([error, "ok"])

    assert await service.complete("sys", "user", 0.7, 200) == "ok"
    assert "temperature" not in completions.requests[1]


def test_reasoning_models_use_default_parameters():
    service = LLMService(InterviewSettings(LLM_API_KEY="sk-test", LLM_MODEL="o3-mini"))
    params = service._build_request_params("s", "u", 0.7, 100)
    assert params["max_completion_tokens"] == 100
    assert "temperature" not in params
