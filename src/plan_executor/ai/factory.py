"""Build the configured AI provider."""

from __future__ import annotations

from plan_executor.ai.cli_provider import CliAgentProvider
from plan_executor.ai.http_provider import HttpChatProvider
from plan_executor.config import AiSettings
from plan_executor.executor.ports import AiProvider


def build_ai_provider(settings: AiSettings) -> AiProvider | None:
    """Return a provider for ``settings.provider`` or None when disabled."""

    if settings.provider == "none":
        return None
    if settings.provider == "cli":
        return CliAgentProvider(
            command_template=settings.command_template,
            model=settings.model,
            timeout_seconds=settings.timeout_seconds,
        )
    if settings.provider == "http":
        return HttpChatProvider(
            base_url=settings.base_url,
            model=settings.model,
            api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
            system_prompt=settings.system_prompt,
        )
    raise ValueError(f"Unsupported AI provider: {settings.provider!r}")
