"""
Provider transport: the one place that talks HTTP to AI providers.

States per call: Calling → Success | AuthError | NetworkError | RateLimited |
Timeout. Failures are raised as ProviderError subclasses for the
orchestrator to demote on; successes record token usage × the provider's
prices before the completion text is handed back.
"""

import logging
import time
from typing import Optional

import httpx

from ..config import Settings
from ..errors import (
    ProviderAuthError,
    ProviderNetworkError,
    ProviderRateLimited,
    ProviderResponseError,
    ProviderTimeout,
)
from ..schemas import Completion, Provider
from .provider_adapters import SYSTEM_PROMPT, ProviderAdapter
from .usage import UsageTracker

logger = logging.getLogger(__name__)


class ProviderTransport:
    """Sends one chat-completion request and normalises the outcome.

    Pass ``client`` to reuse a shared ``httpx.AsyncClient`` (tests inject one
    backed by ``httpx.MockTransport``); otherwise a short-lived client is
    opened per call.
    """

    def __init__(self, settings: Settings, usage: UsageTracker, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.usage = usage
        self._client = client

    async def complete(
        self,
        provider: Provider,
        adapter: ProviderAdapter,
        api_key: Optional[str],
        prompt: str,
        max_tokens: int,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        system_prompt: Optional[str] = SYSTEM_PROMPT,
    ) -> Completion:
        if not adapter.is_remote:
            return adapter.canned_completion(provider)

        request = adapter.build_request(
            provider,
            api_key,
            prompt,
            max_tokens,
            temperature=self.settings.analysis_temperature if temperature is None else temperature,
            system_prompt=system_prompt,
        )
        timeout = timeout or self.settings.llm_request_timeout
        started = time.monotonic()

        try:
            if self._client is not None:
                response = await self._client.post(
                    request.url, json=request.payload, headers=request.headers, timeout=timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(request.url, json=request.payload, headers=request.headers)
        except httpx.TimeoutException as e:
            raise ProviderTimeout(provider.name, f"timed out after {timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise ProviderNetworkError(provider.name, f"{type(e).__name__}: {e}") from e

        self._raise_for_status(provider, response)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError(provider.name, f"non-JSON body: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise ProviderResponseError(provider.name, "response body is not a JSON object")

        try:
            completion = adapter.extract_completion(provider, data)
        except ProviderResponseError:
            raise
        except (ValueError, TypeError, AttributeError) as e:
            raise ProviderResponseError(provider.name, f"malformed completion: {e}") from e
        cost = provider.cost_for(completion.prompt_tokens, completion.completion_tokens)
        self.usage.record_tokens(completion.total_tokens, cost)

        elapsed = time.monotonic() - started
        logger.info(
            f"{provider.name}: {completion.total_tokens} tokens "
            f"(${cost:.5f}) in {elapsed:.2f}s"
        )
        if not completion.text.strip():
            raise ProviderResponseError(provider.name, "empty completion")
        return completion

    @staticmethod
    def _raise_for_status(provider: Provider, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        body = response.text[:300]
        if status in (401, 403):
            raise ProviderAuthError(provider.name, body, http_status=status)
        if status == 429:
            raise ProviderRateLimited(provider.name, body, http_status=status)
        if status in (408, 504):
            raise ProviderTimeout(provider.name, body, http_status=status)
        raise ProviderNetworkError(provider.name, body, http_status=status)
