"""FastAPI dependency injection -- Depends() patterns using app.state from lifespan."""

from typing import Annotated

from fastapi import Depends, Request

from advisory.agents.orchestrator import AdvisoryOrchestrator
from advisory.config import Settings


def get_orchestrator(request: Request) -> AdvisoryOrchestrator:
    return request.app.state.orchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.orchestrator.settings


# Type aliases for cleaner route signatures
Orchestrator = Annotated[AdvisoryOrchestrator, Depends(get_orchestrator)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
