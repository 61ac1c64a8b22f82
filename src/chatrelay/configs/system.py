from datetime import timedelta

from pydantic import BaseModel, Field, model_validator

from chatrelay.core.intent.constants import INTENT_GENERAL_CHAT, Intent

PRIMARY_BREAKER_NAME = "primary_provider_execution"
TOOL_BREAKER_NAME = "tool_execution"
DEFAULT_BREAKER_KEY = "default"

STATIC_PROVIDER_NAME = "static"


class MemoryConfig(BaseModel):
    """Per-user conversation memory settings."""

    history_limit: int = Field(
        default=20, ge=1, description="Maximum turns kept per user"
    )
    cleanup_interval: timedelta = Field(
        default=timedelta(hours=1),
        description="Period between expired-history sweeps",
    )
    history_expiry: timedelta = Field(
        default=timedelta(hours=24),
        description="Idle time after which a user's history is evicted",
    )
    sweep_timeout: timedelta = Field(
        default=timedelta(seconds=30),
        description="Upper bound for a single sweep tick",
    )


class CircuitBreakerConfig(BaseModel):
    """Trip and recovery parameters for one named circuit breaker."""

    failure_threshold: int = Field(
        default=5, ge=1, description="Consecutive failures that open the circuit"
    )
    recovery_timeout: timedelta = Field(
        default=timedelta(seconds=60),
        description="Time an open circuit waits before a trial call",
    )
    half_open_max_calls: int = Field(
        default=3, ge=1, description="Successful trials needed to close again"
    )


def _default_breakers() -> dict[str, CircuitBreakerConfig]:
    return {
        PRIMARY_BREAKER_NAME: CircuitBreakerConfig(
            failure_threshold=3,
            recovery_timeout=timedelta(seconds=30),
            half_open_max_calls=2,
        ),
        TOOL_BREAKER_NAME: CircuitBreakerConfig(
            failure_threshold=5,
            recovery_timeout=timedelta(seconds=60),
            half_open_max_calls=3,
        ),
        DEFAULT_BREAKER_KEY: CircuitBreakerConfig(),
    }


class IntentConfig(BaseModel):
    """Confidence bands used by the classifier and the router."""

    high_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    medium_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    low_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    fallback_threshold: float = Field(default=0.2, ge=0.0, le=1.0)
    default_intent: Intent = Field(
        default=INTENT_GENERAL_CHAT,
        description="Intent used when nothing scores above the fallback threshold",
    )

    @model_validator(mode="after")
    def _check_ordering(self) -> "IntentConfig":
        if not (
            self.high_confidence > self.medium_confidence > self.low_confidence
            >= self.fallback_threshold
        ):
            raise ValueError(
                "Confidence thresholds must be in descending order "
                "(high > medium > low >= fallback)"
            )
        return self


class LLMEndpointConfig(BaseModel):
    """An OpenAI-compatible chat endpoint usable as a provider."""

    endpoint: str | None = Field(
        default=None, description="Base URL; None uses the vendor default"
    )
    api_key: str | None = Field(default=None, description="API key")
    model_name: str = Field(default="gpt-4o-mini", description="Model name")
    temperature: float = Field(default=0.5)
    max_tokens: int = Field(default=2048)
    max_retries: int = Field(
        default=0, description="Client-side retries; the fallback chain retries"
    )
    supports_tools: bool = Field(
        default=True, description="Whether this provider can serve tool_use"
    )


class ProvidersConfig(BaseModel):
    """Provider chain selection (resolved once at startup)."""

    primary: str = Field(default="openai", description="Primary provider name")
    fallback: str = Field(default="local", description="Fallback provider name")
    emergency: str | None = Field(
        default=STATIC_PROVIDER_NAME,
        description="Emergency provider name, or None to disable the tier",
    )
    endpoints: dict[str, LLMEndpointConfig] = Field(
        default_factory=lambda: {
            "openai": LLMEndpointConfig(),
            "local": LLMEndpointConfig(
                endpoint="http://localhost:8080/v1",
                api_key="unused",
                model_name="local-model",
                supports_tools=False,
            ),
        },
        description="Named LLM endpoints",
    )
    provider_timeout: timedelta = Field(
        default=timedelta(seconds=30), description="Per-call provider timeout"
    )
    tool_timeout: timedelta = Field(
        default=timedelta(seconds=10), description="Per-call tool/search timeout"
    )
    primary_breaker: str = Field(default=PRIMARY_BREAKER_NAME)
    tool_breaker: str = Field(default=TOOL_BREAKER_NAME)
    emergency_message: str = Field(
        default=(
            "I'm running in limited mode right now and can't give a full "
            "answer. Please try again in a few minutes."
        ),
        description="Reply used by the static emergency provider",
    )
    system_prompt: str = Field(
        default=(
            "You are a concise, helpful personal assistant. "
            "Answer in the user's language."
        ),
    )


class SearchConfig(BaseModel):
    """Brave web search settings."""

    enabled: bool = Field(default=False)
    endpoint: str = Field(default="https://api.search.brave.com/res/v1/web/search")
    api_key: str | None = Field(default=None)
    count: int = Field(default=5, ge=1, le=20)
    country: str = Field(default="us")
    search_lang: str = Field(default="en")
    timeout: timedelta = Field(default=timedelta(seconds=4))


class LoggingConfig(BaseModel):
    """Root logger settings."""

    level: str = Field(default="INFO")
    json_output: bool = Field(
        default=True, description="Emit JSON lines instead of coloured text"
    )


class TracingConfig(BaseModel):
    """OpenTelemetry exporter settings."""

    enabled: bool = Field(default=False)
    service_name: str = Field(default="chatrelay")
    endpoint: str | None = Field(default=None)
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    excluded_urls: list[str] = Field(default_factory=lambda: ["/health", "/metrics"])
