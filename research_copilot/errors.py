"""Error taxonomy for the research pipeline.

Every error carries a short, user-facing message and the HTTP status the API
layer answers with. Technical detail belongs in the log, never in `message`.
"""
from __future__ import annotations


class ResearchError(Exception):
    status_code: int = 500
    default_message: str = "Research failed. Please try again."

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"error": self.message}


class ValidationError(ResearchError):
    status_code = 400
    default_message = "Query is required"


class AuthError(ResearchError):
    status_code = 401
    default_message = "Authentication required. Please sign in to use research features."


class RateLimitError(ResearchError):
    status_code = 429
    default_message = "Rate limit exceeded. Please wait before making more research requests."

    def __init__(self, reset_in_ms: int, message: str | None = None):
        super().__init__(message)
        self.reset_in_ms = reset_in_ms

    @property
    def reset_in_seconds(self) -> int:
        # Round up so clients never retry inside the window.
        return max(0, -(-self.reset_in_ms // 1000))

    def to_body(self) -> dict:
        return {"error": self.message, "resetIn": self.reset_in_seconds}


class ConfigurationError(ResearchError):
    status_code = 503
    default_message = "Research service not configured. Please contact support."


class UpstreamError(ResearchError):
    status_code = 500
    default_message = "Research provider is unavailable. Please try again shortly."

    def __init__(self, message: str | None = None, *, provider: str | None = None, detail: str | None = None):
        super().__init__(message, detail=detail)
        self.provider = provider


class ProviderTimeoutError(UpstreamError):
    default_message = "Research provider timed out. Please try again."


class RequestTimeoutError(ResearchError):
    status_code = 504
    default_message = "Research took too long. Please try a narrower question."
