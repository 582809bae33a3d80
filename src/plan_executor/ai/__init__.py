"""AI providers answering ai-query tasks."""

from plan_executor.ai.base import AiProviderError
from plan_executor.ai.cli_provider import CliAgentProvider
from plan_executor.ai.factory import build_ai_provider
from plan_executor.ai.http_provider import HttpChatProvider

__all__ = [
    "AiProviderError",
    "CliAgentProvider",
    "HttpChatProvider",
    "build_ai_provider",
]
