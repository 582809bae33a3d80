"""Runtime configuration for the plan executor and its AI provider."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from plan_executor.executor.policy import DEFAULT_ALLOWED_COMMANDS

SUPPORTED_AI_PROVIDERS = ("none", "cli", "http")
DEFAULT_SYSTEM_PROMPT = (
    "You are a concise coding assistant executing one step of an automation plan. "
    "Answer the request directly."
)


@dataclass(slots=True)
class ExecutorSettings:
    """Retry, timeout and command policy settings."""

    default_max_retries: int = 3
    retry_backoff_seconds: float = 1.0
    command_timeout_seconds: int = 600
    allowed_commands: tuple[str, ...] = DEFAULT_ALLOWED_COMMANDS
    output_preview_chars: int = 500


@dataclass(slots=True)
class AiSettings:
    """Provider answering ai-query tasks."""

    provider: str = "none"
    command_template: str = ""
    base_url: str = "http://localhost:11434/v1"
    model: str = ""
    api_key: str | None = None
    timeout_seconds: float = 120.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    working_directory: Path = Path(".")
    dry_run: bool = False
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    ai: AiSettings = field(default_factory=AiSettings)

    @classmethod
    def from_env(cls, working_directory: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            working_directory=working_directory
            or Path(os.getenv("PLAN_EXECUTOR_WORKDIR", ".")),
            dry_run=_env_bool("PLAN_EXECUTOR_DRY_RUN", default=False),
            executor=ExecutorSettings(
                default_max_retries=int(os.getenv("PLAN_EXECUTOR_MAX_RETRIES", "3")),
                retry_backoff_seconds=float(
                    os.getenv("PLAN_EXECUTOR_RETRY_BACKOFF_SECONDS", "1.0"),
                ),
                command_timeout_seconds=int(
                    os.getenv("PLAN_EXECUTOR_COMMAND_TIMEOUT_SECONDS", "600"),
                ),
                allowed_commands=_collect_allowed_commands(),
                output_preview_chars=int(os.getenv("PLAN_EXECUTOR_OUTPUT_PREVIEW_CHARS", "500")),
            ),
            ai=AiSettings(
                provider=os.getenv("PLAN_EXECUTOR_AI_PROVIDER", "none").strip().lower(),
                command_template=os.getenv("PLAN_EXECUTOR_AI_COMMAND_TEMPLATE", ""),
                base_url=os.getenv("PLAN_EXECUTOR_AI_BASE_URL", "http://localhost:11434/v1"),
                model=os.getenv("PLAN_EXECUTOR_AI_MODEL", ""),
                api_key=os.getenv("PLAN_EXECUTOR_AI_API_KEY") or None,
                timeout_seconds=float(os.getenv("PLAN_EXECUTOR_AI_TIMEOUT_SECONDS", "120")),
                system_prompt=os.getenv("PLAN_EXECUTOR_AI_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range or inconsistent values."""

        if self.executor.default_max_retries < 0:
            raise ValueError("PLAN_EXECUTOR_MAX_RETRIES must be >= 0.")
        if self.executor.retry_backoff_seconds < 0:
            raise ValueError("PLAN_EXECUTOR_RETRY_BACKOFF_SECONDS must be >= 0.")
        if self.executor.command_timeout_seconds <= 0:
            raise ValueError("PLAN_EXECUTOR_COMMAND_TIMEOUT_SECONDS must be > 0.")
        if not self.executor.allowed_commands:
            raise ValueError("PLAN_EXECUTOR_ALLOWED_COMMANDS must list at least one command.")
        if self.executor.output_preview_chars <= 0:
            raise ValueError("PLAN_EXECUTOR_OUTPUT_PREVIEW_CHARS must be > 0.")

        if self.ai.provider not in SUPPORTED_AI_PROVIDERS:
            raise ValueError(
                f"Unsupported PLAN_EXECUTOR_AI_PROVIDER: {self.ai.provider!r}. "
                f"Expected one of: {', '.join(SUPPORTED_AI_PROVIDERS)}",
            )
        if self.ai.timeout_seconds <= 0:
            raise ValueError("PLAN_EXECUTOR_AI_TIMEOUT_SECONDS must be > 0.")
        if self.ai.provider == "cli":
            template = self.ai.command_template.strip()
            if not template:
                raise ValueError(
                    "PLAN_EXECUTOR_AI_COMMAND_TEMPLATE is required when AI provider is 'cli'.",
                )
            if "{prompt}" not in template and "{prompt_file}" not in template:
                raise ValueError(
                    "PLAN_EXECUTOR_AI_COMMAND_TEMPLATE must include {prompt} or {prompt_file}.",
                )
        if self.ai.provider == "http":
            _validate_base_url(self.ai.base_url)
            if not self.ai.model.strip():
                raise ValueError("PLAN_EXECUTOR_AI_MODEL is required when AI provider is 'http'.")


def _collect_allowed_commands() -> tuple[str, ...]:
    raw = os.getenv("PLAN_EXECUTOR_ALLOWED_COMMANDS", "").strip()
    if not raw:
        return DEFAULT_ALLOWED_COMMANDS

    deduped: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        normalized = part.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return tuple(deduped)


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid PLAN_EXECUTOR_AI_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
