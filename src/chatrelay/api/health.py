"""Health endpoint.

``degraded`` means the primary circuit is not CLOSED; the service still
answers through the fallback tiers, so the status code stays ``200``.
"""

from fastapi import APIRouter

from chatrelay.core.orchestrator import HealthReport

from .deps import OrchestratorDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(orchestrator: OrchestratorDep) -> HealthReport:
    return orchestrator.health()
