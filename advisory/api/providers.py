"""Provider router -- status, usage counters, provider table and credential configuration."""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from advisory.api.dependencies import Orchestrator
from advisory.api.schemas import ConfigureRequest, ConfigureResponse, ProviderResponse
from advisory.errors import CredentialInvalid, UnknownProviderError
from advisory.schemas import ServiceStatus, UsageStats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=ServiceStatus)
async def service_status(orchestrator: Orchestrator):
    return orchestrator.get_service_status()


@router.get("/usage", response_model=UsageStats)
async def usage_stats(orchestrator: Orchestrator):
    return orchestrator.get_usage_stats()


@router.get("/providers", response_model=List[ProviderResponse])
async def list_providers(orchestrator: Orchestrator):
    return [
        ProviderResponse(
            name=p.name,
            display_name=p.display_name,
            model=p.model,
            priority=p.priority,
            is_available=p.is_available,
            requires_api_key=p.requires_api_key,
            is_fallback=p.is_fallback,
            has_credential=orchestrator.credentials.has(p.name),
            failure_count=p.failure_count,
            last_error=p.last_error,
        )
        for p in orchestrator.list_providers()
    ]


@router.post("/providers/{name}/configure", response_model=ConfigureResponse)
async def configure_provider(name: str, body: ConfigureRequest, orchestrator: Orchestrator):
    try:
        configured = await orchestrator.configure_service(name, body.api_key)
    except UnknownProviderError as e:
        raise HTTPException(404, str(e))
    except CredentialInvalid as e:
        raise HTTPException(400, str(e))

    return ConfigureResponse(
        provider=name,
        configured=configured,
        active_provider=orchestrator.get_service_status().current_provider,
    )
