"""
Error taxonomy for the advisory core.

Only configuration-time errors (CredentialInvalid, UnknownProviderError) and
caller-requested cancellation (AnalysisCancelled) ever leave the orchestrator.
ProviderError subclasses are absorbed by provider demotion.
"""

from typing import Optional


class AdvisoryError(RuntimeError):
    """Base class for all advisory errors."""


class UnknownProviderError(AdvisoryError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown AI provider: {provider}")


class CredentialInvalid(AdvisoryError):
    """A probe with the supplied credential was rejected."""

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        self.detail = detail
        message = f"Credential validation failed for {provider}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProviderError(AdvisoryError):
    """A single provider call failed. Recovered by demotion."""

    kind = "error"

    def __init__(self, provider: str, detail: str, http_status: Optional[int] = None):
        self.provider = provider
        self.detail = detail[:300]
        self.http_status = http_status
        status = f" {http_status}" if http_status is not None else ""
        super().__init__(f"{provider}{status}: {self.detail}")


class ProviderAuthError(ProviderError):
    kind = "auth"


class ProviderRateLimited(ProviderError):
    kind = "rate_limited"


class ProviderTimeout(ProviderError):
    kind = "timeout"


class ProviderNetworkError(ProviderError):
    kind = "network"


class ProviderResponseError(ProviderError):
    """The provider answered, but the envelope was malformed or empty."""

    kind = "response"


class AllProvidersExhausted(AdvisoryError):
    """Every provider, the fallback included, was tried. Should be unreachable."""

    def __init__(self, provider_errors: dict):
        self.provider_errors = provider_errors
        tried = ", ".join(f"{name}: {err}" for name, err in provider_errors.items())
        super().__init__(f"All AI providers exhausted ({len(provider_errors)} tried): {tried}")


class AnalysisCancelled(AdvisoryError):
    """The analysis deadline expired while a provider call was in flight."""

    def __init__(self, provider: str, deadline: float):
        self.provider = provider
        self.deadline = deadline
        super().__init__(f"Analysis cancelled after {deadline:.1f}s while calling {provider}")
