"""
Exception types raised by the text cleanup core.

Providers raise these and never swap in fallback text; the caller decides
whether to paste the raw transcription instead.
"""

from typing import Optional


class VoxcleanError(Exception):
    """Base class for all voxclean errors."""


class LlmRequestError(VoxcleanError):
    """The upstream LLM answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str, body: str):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"LLM request failed: {status_code} {reason} - {body}")


class LlmEmptyResponseError(VoxcleanError):
    """The upstream accepted the request but returned no usable text."""

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        message = "LLM returned no text content"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UnsupportedProviderError(VoxcleanError):
    """The configured provider tag is not one we know how to build."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported LLM provider: {provider!r}")


class ProviderNotConfiguredError(VoxcleanError):
    """Required fields for the selected provider are missing."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"LLM provider {provider!r} is not fully configured")


class LlmConnectionError(VoxcleanError):
    """No HTTP answer arrived, or the SDK could not send the request at all."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"LLM connection failed: {detail}")


class LlmTimeoutError(LlmConnectionError):
    """The single upstream request ran past its timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self.detail = f"timed out after {timeout:g}s"
        VoxcleanError.__init__(self, f"LLM request timed out after {timeout:g}s")
