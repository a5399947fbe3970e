"""Provider table, usage counters and service status models."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .base import ApiStyle


class Provider(BaseModel):
    """A registered AI completion service.

    ``is_available`` is mutated by probing and demotion only; providers are
    never removed from the registry.
    """
    name: str
    display_name: str
    endpoint: str = ""
    model: str
    api_style: ApiStyle = ApiStyle.OPENAI
    cost_per_token: float = 0.0
    # Asymmetric pricing; either side falls back to cost_per_token when unset
    input_cost_per_token: Optional[float] = None
    output_cost_per_token: Optional[float] = None
    max_tokens: int = 4000
    priority: int = 50          # lower = preferred
    is_available: bool = False
    requires_api_key: bool = True
    is_fallback: bool = False
    failure_count: int = 0
    last_error: Optional[str] = None

    def cost_for(self, prompt_tokens: int, completion_tokens: int) -> float:
        input_price = self.cost_per_token if self.input_cost_per_token is None else self.input_cost_per_token
        output_price = self.cost_per_token if self.output_cost_per_token is None else self.output_cost_per_token
        return prompt_tokens * input_price + completion_tokens * output_price


class Completion(BaseModel):
    """Plain-text completion returned by the transport."""
    text: str = ""
    provider: str = ""
    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class UsageStats(BaseModel):
    total_requests: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    requests_today: int = 0
    cost_today: float = 0.0
    average_response_time: float = 0.0     # seconds, running mean


class ServiceStatus(BaseModel):
    is_online: bool
    current_provider: str
    available_providers: List[str] = Field(default_factory=list)
    total_usage: int = 0
    estimated_cost: float = 0.0
    last_error: Optional[str] = None
