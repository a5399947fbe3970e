"""API request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from advisory.schemas import AnalysisData, AnalysisExtras, ServiceStatus


# -- Providers --

class ConfigureRequest(BaseModel):
    api_key: str = ""


class ConfigureResponse(BaseModel):
    provider: str
    configured: bool
    active_provider: str


class ProviderResponse(BaseModel):
    """Provider table row. Credentials are reported only as present/absent."""
    name: str
    display_name: str
    model: str
    priority: int
    is_available: bool
    requires_api_key: bool
    is_fallback: bool
    has_credential: bool = False
    failure_count: int = 0
    last_error: Optional[str] = None


# -- Analysis --

class AnalysisRequest(BaseModel):
    data: AnalysisData = Field(default_factory=AnalysisData)
    extras: Optional[AnalysisExtras] = None
    timeout: Optional[float] = Field(default=None, gt=0)  # seconds; overrides ANALYSIS_DEADLINE_SECONDS


class AnswerAnalysisRequest(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    context: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)


class AnswerAnalysisResponse(BaseModel):
    analysis: str


# -- Health --

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service: ServiceStatus
    config: dict = Field(default_factory=dict)
