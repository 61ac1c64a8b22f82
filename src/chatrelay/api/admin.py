"""Operator endpoints: circuit breakers and provider switching.

These bypass the normal breaker transition rules and are meant for
maintenance only.
"""

import logging

from fastapi import APIRouter

from chatrelay.infra.resilience import CircuitBreakerSnapshot

from .deps import OrchestratorDep
from .models import AdminActionResponse, ProviderSwitchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/circuit-breakers")
async def circuit_breakers(
    orchestrator: OrchestratorDep,
) -> dict[str, CircuitBreakerSnapshot]:
    return orchestrator.get_circuit_breaker_status()


@router.post("/circuit-breakers/reset")
async def reset_circuit_breakers(orchestrator: OrchestratorDep) -> AdminActionResponse:
    await orchestrator.reset_circuit_breakers()
    logger.warning("Operator reset all circuit breakers")
    return AdminActionResponse(action="reset")


@router.post("/circuit-breakers/force-open")
async def force_circuit_breakers_open(
    orchestrator: OrchestratorDep,
) -> AdminActionResponse:
    await orchestrator.force_circuit_breakers_open()
    logger.warning("Operator forced all circuit breakers open")
    return AdminActionResponse(action="force-open")


@router.post("/providers/switch-to-fallback")
async def switch_to_fallback(orchestrator: OrchestratorDep) -> ProviderSwitchResponse:
    await orchestrator.switch_to_fallback()
    return ProviderSwitchResponse(current_provider=orchestrator.chain.current.name)


@router.post("/providers/switch-to-primary")
async def switch_to_primary(orchestrator: OrchestratorDep) -> ProviderSwitchResponse:
    await orchestrator.switch_to_primary()
    return ProviderSwitchResponse(current_provider=orchestrator.chain.current.name)
