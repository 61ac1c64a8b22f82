"""Resilience exceptions raised along the provider fallback chain."""

from __future__ import annotations

# Returned to end users verbatim; never include internal detail here.
ALL_PROVIDERS_UNAVAILABLE_MESSAGE = (
    "All providers are unavailable. Please try again later."
)
ALL_PROVIDERS_UNAVAILABLE_CODE = "ALL_PROVIDERS_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BreakerOpen(Exception):
    """Raised when a circuit is OPEN (or out of trial slots); nothing was called."""

    def __init__(self, breaker: str) -> None:
        super().__init__(f"Circuit breaker '{breaker}' is open.")
        self.breaker = breaker


class ProviderExecutionFailure(Exception):
    """Raised when a provider call itself fails or times out."""

    def __init__(self, provider: str, tier: str, message: str) -> None:
        super().__init__(f"{tier} provider '{provider}' failed: {message}")
        self.provider = provider
        self.tier = tier


class AllProvidersExhausted(Exception):
    """Raised when every tier of the fallback chain failed.

    The only error of the pipeline that reaches the caller.  ``str()``
    is the user-facing message.
    """

    def __init__(self, request_id: str | None = None) -> None:
        super().__init__(ALL_PROVIDERS_UNAVAILABLE_MESSAGE)
        self.request_id = request_id
        self.code = ALL_PROVIDERS_UNAVAILABLE_CODE
