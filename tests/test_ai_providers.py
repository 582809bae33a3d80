from __future__ import annotations

import json
import re
import sys
from pathlib import Path

import allure
import httpx
import pytest

from plan_executor.ai import AiProviderError, CliAgentProvider, HttpChatProvider, build_ai_provider
from plan_executor.ai.cli_provider import build_agent_argv
from plan_executor.config import AiSettings

pytestmark = [
    allure.epic("AI Providers"),
    allure.feature("Query Backends"),
]

ECHO_AGENT = f"{sys.executable} -m plan_executor.ai.echo_agent"


def _chat_response(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_cli_provider_answers_through_echo_agent() -> None:
    provider = CliAgentProvider(
        command_template=f"{ECHO_AGENT} --prompt-file {{prompt_file}}",
        timeout_seconds=30,
    )

    assert provider.ask("what's in a name?") == "echo: what's in a name?"


def test_cli_provider_passes_model_placeholder() -> None:
    provider = CliAgentProvider(
        command_template=f"{ECHO_AGENT} --model {{model}} {{prompt}}",
        model="small model",
        timeout_seconds=30,
    )

    assert provider.ask("hi; rm -rf /") == "echo[small model]: hi; rm -rf /"


def test_cli_provider_reports_non_zero_exit() -> None:
    provider = CliAgentProvider(
        command_template=f"{ECHO_AGENT} --fail-with 143 --prompt-file {{prompt_file}}",
        timeout_seconds=30,
    )

    with pytest.raises(AiProviderError, match="AI agent exited with code 143") as error:
        provider.ask("boom")

    assert error.value.transient
    assert "echo agent failure: boom" in str(error.value)


def test_cli_provider_missing_command_is_not_transient() -> None:
    provider = CliAgentProvider(command_template="definitely-not-an-agent {prompt}")

    with pytest.raises(AiProviderError, match="AI agent command not found") as error:
        provider.ask("hello")

    assert not error.value.transient


@pytest.mark.parametrize(
    ("template", "message"),
    [
        ("", "template is empty"),
        ("agent --model {model}", "must include {prompt} or {prompt_file}"),
        ("agent {prompt} {unknown}", "Unsupported command template placeholder"),
    ],
)
def test_build_agent_argv_rejects_bad_templates(template: str, message: str) -> None:
    with pytest.raises(AiProviderError, match=re.escape(message)):
        build_agent_argv(
            command_template=template,
            model="",
            prompt="hello",
            prompt_file=Path("/tmp/prompt.txt"),
        )


def test_build_agent_argv_keeps_prompt_as_single_argument() -> None:
    argv = build_agent_argv(
        command_template="agent -p {prompt} --file {prompt_file}",
        model="",
        prompt="two words && more",
        prompt_file=Path("/tmp/my prompt.txt"),
    )

    assert argv == ["agent", "-p", "two words && more", "--file", "/tmp/my prompt.txt"]


def test_http_provider_posts_chat_completion() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_chat_response("  42  "))

    with HttpChatProvider(
        base_url="http://llm.local/v1/",
        model="tiny",
        api_key="secret-key",
        system_prompt="Be brief.",
        transport=httpx.MockTransport(handler),
    ) as provider:
        answer = provider.ask("meaning of life?")

    assert answer == "42"
    request = seen[0]
    assert str(request.url) == "http://llm.local/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer secret-key"
    assert json.loads(request.content) == {
        "model": "tiny",
        "messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "meaning of life?"},
        ],
        "stream": False,
    }


def test_http_provider_omits_authorization_without_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_chat_response("ok"))

    with HttpChatProvider(
        base_url="http://llm.local/v1",
        model="tiny",
        transport=httpx.MockTransport(handler),
    ) as provider:
        provider.ask("ping")

    assert "Authorization" not in seen[0].headers


@pytest.mark.parametrize(
    ("response", "message", "transient"),
    [
        (httpx.Response(503, text="overloaded"), "AI provider returned HTTP 503: overloaded", True),
        (httpx.Response(429, text="slow down"), "AI provider returned HTTP 429", True),
        (httpx.Response(401, text="bad key"), "AI provider returned HTTP 401", False),
        (httpx.Response(200, text="not json"), "AI provider returned invalid JSON.", False),
        (httpx.Response(200, json={"choices": []}), "response has no choices.", False),
        (
            httpx.Response(200, json={"choices": [{"message": {}}]}),
            "response has no message content.",
            False,
        ),
    ],
)
def test_http_provider_error_responses(
    response: httpx.Response,
    message: str,
    transient: bool,
) -> None:
    with HttpChatProvider(
        base_url="http://llm.local/v1",
        model="tiny",
        transport=httpx.MockTransport(lambda request: response),
    ) as provider, pytest.raises(AiProviderError, match=message) as error:
        provider.ask("ping")

    assert error.value.transient is transient


def test_http_provider_timeout_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with HttpChatProvider(
        base_url="http://llm.local/v1",
        model="tiny",
        transport=httpx.MockTransport(handler),
    ) as provider, pytest.raises(AiProviderError, match="timed out") as error:
        provider.ask("ping")

    assert error.value.transient


def test_factory_returns_none_when_disabled() -> None:
    assert build_ai_provider(AiSettings()) is None


def test_factory_builds_cli_provider() -> None:
    provider = build_ai_provider(
        AiSettings(provider="cli", command_template="agent {prompt}", model="m"),
    )

    assert isinstance(provider, CliAgentProvider)
    assert provider.model == "m"


def test_factory_builds_http_provider() -> None:
    provider = build_ai_provider(AiSettings(provider="http", model="m"))

    assert isinstance(provider, HttpChatProvider)
    provider.close()


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported AI provider"):
        build_ai_provider(AiSettings(provider="carrier-pigeon"))
