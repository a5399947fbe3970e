"""Health check router -- service status and config summary."""

from datetime import datetime, timezone

from fastapi import APIRouter

from advisory import __version__
from advisory.api.dependencies import AppSettings, Orchestrator
from advisory.api.schemas import HealthResponse

router = APIRouter()


@router.get("/")
async def root():
    return {"service": "R&D Advisory API", "version": __version__}


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: Orchestrator, settings: AppSettings):
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=orchestrator.get_service_status(),
        config={
            "demo_mode": settings.demo_mode,
            "use_ollama": settings.use_ollama,
            "default_industry": settings.default_industry,
            "analysis_max_tokens": settings.analysis_max_tokens,
            "llm_request_timeout": settings.llm_request_timeout,
            "analysis_deadline_seconds": settings.analysis_deadline_seconds,
        },
    )
