"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of writing
``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias can be
overridden in tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from chatrelay.core.deps import get_orchestrator
from chatrelay.core.orchestrator import ProviderFallbackOrchestrator

OrchestratorDep = Annotated[
    ProviderFallbackOrchestrator, Depends(get_orchestrator)
]
