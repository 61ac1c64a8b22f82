"""Resilience primitives for the provider fallback chain.

* **CircuitBreaker** / **CircuitBreakerRegistry**: named, per-process
  CLOSED / OPEN / HALF_OPEN breakers created on first use.
* **Exceptions**: ``BreakerOpen`` and ``ProviderExecutionFailure`` are
  handled inside the orchestrator; ``AllProvidersExhausted`` is the only
  one that reaches API callers (HTTP 503).
"""

from .base import (
    ALL_PROVIDERS_UNAVAILABLE_CODE,
    ALL_PROVIDERS_UNAVAILABLE_MESSAGE,
    AllProvidersExhausted,
    BreakerOpen,
    ProviderExecutionFailure,
)
from .circuit_breaker import (
    STATE_CLOSED,
    STATE_HALF_OPEN,
    STATE_OPEN,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerSnapshot,
    CircuitState,
)

__all__ = [
    "ALL_PROVIDERS_UNAVAILABLE_CODE",
    "ALL_PROVIDERS_UNAVAILABLE_MESSAGE",
    "AllProvidersExhausted",
    "BreakerOpen",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerSnapshot",
    "CircuitState",
    "ProviderExecutionFailure",
    "STATE_CLOSED",
    "STATE_HALF_OPEN",
    "STATE_OPEN",
]
