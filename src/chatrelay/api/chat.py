"""Chat API endpoints."""

import logging

from fastapi import APIRouter, Response, status

from .deps import OrchestratorDep
from .models import ChatRequest, ChatResponse, StatsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post("/chat")
async def chat(chat_request: ChatRequest, orchestrator: OrchestratorDep) -> ChatResponse:
    """Answer one message.

    Tries the fast path, then the provider chain.  When every provider
    fails the response is ``503`` with code ``ALL_PROVIDERS_UNAVAILABLE``.
    """
    outcome = await orchestrator.handle_message(
        chat_request.user_id, chat_request.message, chat_request.request_id
    )
    return ChatResponse(
        response=outcome.text,
        request_id=outcome.request_id,
        tier=outcome.tier,
        fast_path=outcome.fast_path,
    )


@router.delete("/chat/{user_id}/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(user_id: str, orchestrator: OrchestratorDep) -> Response:
    await orchestrator.clear_history(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats")
async def stats(orchestrator: OrchestratorDep) -> StatsResponse:
    memory = orchestrator.get_stats()
    return StatsResponse(
        total_users=memory.total_users, total_messages=memory.total_messages
    )
