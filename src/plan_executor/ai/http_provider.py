"""OpenAI-compatible chat completion provider over HTTP."""

from __future__ import annotations

import logging

import httpx

from plan_executor.ai.base import AiProviderError
from plan_executor.config import DEFAULT_SYSTEM_PROMPT
from plan_executor.sanitization import sanitize_preview

logger = logging.getLogger(__name__)


class HttpChatProvider:
    """Single-turn chat call against ``{base_url}/chat/completions``.

    Works with OpenAI-style endpoints and local servers exposing the same API
    (Ollama, llama.cpp, LM Studio).
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout_seconds: float = 120.0,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self._endpoint = base_url.rstrip("/") + "/chat/completions"
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers=headers,
            transport=transport,
        )

    def ask(self, query: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": query},
            ],
            "stream": False,
        }
        try:
            response = self._client.post(self._endpoint, json=payload)
        except httpx.TimeoutException as error:
            logger.warning("Timeout querying %s", self._endpoint)
            raise AiProviderError("AI provider request timed out.", transient=True) from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error querying %s: %s", self._endpoint, error)
            raise AiProviderError(f"AI provider request failed: {error}", transient=True) from error

        if not response.is_success:
            status = response.status_code
            raise AiProviderError(
                f"AI provider returned HTTP {status}: "
                f"{sanitize_preview(response.text, max_chars=500)}",
                transient=status == 429 or status >= 500,
            )
        return _extract_message_content(response)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpChatProvider:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _extract_message_content(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError as error:
        raise AiProviderError("AI provider returned invalid JSON.", transient=False) from error

    choices = body.get("choices") if isinstance(body, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise AiProviderError("AI provider response has no choices.", transient=False)
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise AiProviderError("AI provider response has no message content.", transient=False)
    return content.strip()
