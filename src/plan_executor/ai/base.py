"""Shared error type for AI providers."""

from __future__ import annotations


class AiProviderError(RuntimeError):
    """Provider call failed, with a retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient
