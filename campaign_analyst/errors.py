"""
Exceptions raised by the analyst pipeline.

Routers turn these into `{"error": message}` JSON responses.
"""


class AnalystError(Exception):
    """Base class for analyst failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AnalystError):
    """A required setting (API key, Supabase URL) is missing."""


class DataStoreError(AnalystError):
    """A read from the campaign data store failed."""


class GatewayError(AnalystError):
    """The AI gateway refused or failed the request before streaming began."""

    RATE_LIMITED = "Rate limit exceeded. Please try again in a moment."
    CREDITS_DEPLETED = "AI credits depleted. Please add credits to your workspace."
    FAILED = "AI analysis failed. Please try again."

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def from_status(cls, upstream_status: int) -> "GatewayError":
        """Map an upstream HTTP status to the status/message sent to the client."""
        if upstream_status == 429:
            return cls(429, cls.RATE_LIMITED)
        if upstream_status == 402:
            return cls(402, cls.CREDITS_DEPLETED)
        return cls(500, cls.FAILED)
