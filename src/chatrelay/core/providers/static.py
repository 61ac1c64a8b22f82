"""Emergency tier: a fixed reply that never fails."""

from chatrelay.core.intent.models import RoutingDecision

from .base import Provider


class StaticProvider(Provider):
    """Answers every message with the configured emergency message."""

    def __init__(self, message: str, name: str = "static") -> None:
        self.name = name
        self._message = message

    async def respond(
        self,
        user_id: str,
        text: str,
        request_id: str,
        decision: RoutingDecision | None = None,
    ) -> str:
        return self._message
