from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from grantbridge.core.errors import ConfigurationError, UpstreamError
from grantbridge.llm import client as client_module
from grantbridge.llm.client import SonarClient


REQUEST = httpx.Request("POST", "https://api.perplexity.ai/chat/completions")


def reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.requests = []
        self.result = reply("  hello  ")
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        FakeOpenAI.instances.append(self)

    def _create(self, **params):
        self.requests.append(params)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture(autouse=True)
def fake_openai(monkeypatch):
    FakeOpenAI.instances = []
    monkeypatch.setattr(client_module, "OpenAI", FakeOpenAI)


def test_missing_key_fails_on_first_request(monkeypatch):
    monkeypatch.delenv("SONAR_API_KEY", raising=False)
    client = SonarClient()

    with pytest.raises(ConfigurationError):
        client.complete([{"role": "user", "content": "hi"}])


def test_sdk_configured_for_sonar_without_retries():
    client = SonarClient(api_key="pplx-test", timeout=12.0)
    client.complete([{"role": "user", "content": "hi"}])

    kwargs = FakeOpenAI.instances[0].kwargs
    assert kwargs["api_key"] == "pplx-test"
    assert kwargs["base_url"] == "https://api.perplexity.ai"
    assert kwargs["timeout"] == 12.0
    assert kwargs["max_retries"] == 0


def test_complete_passes_only_given_parameters():
    client = SonarClient(api_key="pplx-test")

    assert client.complete([{"role": "user", "content": "hi"}]) == "hello"
    assert FakeOpenAI.instances[0].requests[0] == {
        "model": "sonar",
        "messages": [{"role": "user", "content": "hi"}],
    }

    client.complete([], model="sonar-pro", max_tokens=10, temperature=0.2, response_format={"type": "x"})
    params = FakeOpenAI.instances[0].requests[1]
    assert params["model"] == "sonar-pro"
    assert params["max_tokens"] == 10
    assert params["temperature"] == 0.2
    assert params["response_format"] == {"type": "x"}


@pytest.mark.parametrize("result", [SimpleNamespace(choices=[]), reply(None)])
def test_empty_reply_is_empty_string(result):
    client = SonarClient(api_key="pplx-test")
    client.complete([])
    FakeOpenAI.instances[0].result = result

    assert client.complete([]) == ""


def test_status_error_becomes_upstream_error():
    client = SonarClient(api_key="pplx-test")
    client.complete([])
    FakeOpenAI.instances[0].result = APIStatusError(
        "Service Unavailable",
        response=httpx.Response(503, request=REQUEST),
        body=None,
    )

    with pytest.raises(UpstreamError) as exc_info:
        client.complete([])
    assert exc_info.value.message == "Sonar API error: 503"


def test_connection_error_becomes_upstream_error():
    client = SonarClient(api_key="pplx-test")
    client.complete([])
    FakeOpenAI.instances[0].result = APIConnectionError(request=REQUEST)

    with pytest.raises(UpstreamError):
        client.complete([])
