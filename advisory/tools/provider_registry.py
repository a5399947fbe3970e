"""
Provider registry, credential store and active-provider selection.

The registry holds a small static table of providers plus exactly one
zero-cost fallback that is always available and sorts last. Selection is
deterministic: the available provider with the smallest priority wins, ties
broken by name. Availability writes and selection share one lock so
concurrent analyses cannot race on them.
"""

import logging
import threading
from typing import Dict, List, Optional

from ..config import Settings
from ..errors import UnknownProviderError
from ..schemas import ApiStyle, Provider
from .provider_adapters import ADAPTERS, ProviderAdapter

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "demo"


class CredentialStore:
    """In-memory provider secrets. Never logged, never persisted."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._keys: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def set(self, provider: str, secret: str) -> None:
        with self._lock:
            self._keys[provider] = secret

    def get(self, provider: str) -> Optional[str]:
        with self._lock:
            return self._keys.get(provider)

    def has(self, provider: str) -> bool:
        with self._lock:
            return bool(self._keys.get(provider))

    def names(self) -> List[str]:
        with self._lock:
            return [name for name, key in self._keys.items() if key]

    def __repr__(self) -> str:
        return f"CredentialStore(providers={self.names()})"


def build_default_providers(settings: Settings) -> List[Provider]:
    """Known providers, in priority order.

    1. OpenAI (primary)
    2. Anthropic Claude (backup)
    3. OpenRouter (cloud proxy, OpenAI-compatible)
    4. Ollama (local, no key)
    99. demo (zero-cost, no network, always available)
    """
    return [
        Provider(
            name="openai",
            display_name="OpenAI GPT",
            endpoint=settings.openai_base_url,
            model=settings.openai_model,
            api_style=ApiStyle.OPENAI,
            cost_per_token=0.002 / 1000,
            input_cost_per_token=0.0015 / 1000,
            output_cost_per_token=0.002 / 1000,
            priority=1,
        ),
        Provider(
            name="claude",
            display_name="Anthropic Claude",
            endpoint=settings.anthropic_base_url,
            model=settings.anthropic_model,
            api_style=ApiStyle.ANTHROPIC,
            cost_per_token=0.00025 / 1000,
            input_cost_per_token=0.00025 / 1000,
            output_cost_per_token=0.00125 / 1000,
            priority=2,
        ),
        Provider(
            name="openrouter",
            display_name="OpenRouter",
            endpoint=settings.openrouter_base_url,
            model=settings.openrouter_model,
            api_style=ApiStyle.OPENAI,
            cost_per_token=0.0004 / 1000,
            priority=3,
        ),
        Provider(
            name="ollama",
            display_name="Ollama (local)",
            endpoint=f"{settings.ollama_base_url}/v1",
            model=settings.ollama_model,
            api_style=ApiStyle.OPENAI,
            cost_per_token=0.0,
            priority=4,
            requires_api_key=False,
        ),
        Provider(
            name=FALLBACK_PROVIDER,
            display_name="演示模式",
            endpoint="",
            model="demo-model",
            api_style=ApiStyle.LOCAL,
            cost_per_token=0.0,
            priority=99,
            is_available=True,
            requires_api_key=False,
            is_fallback=True,
        ),
    ]


class ProviderRegistry:
    """Static provider table with availability tracking and selection."""

    def __init__(self, providers: List[Provider], adapters: Optional[Dict[str, ProviderAdapter]] = None):
        self._lock = threading.RLock()
        self._providers: Dict[str, Provider] = {}
        self._adapters: Dict[str, ProviderAdapter] = {}
        self._active: str = ""
        for provider in providers:
            self.register(provider, (adapters or {}).get(provider.name))
        if not any(p.is_fallback for p in self._providers.values()):
            raise ValueError("Provider registry requires a fallback provider")
        self.select_active()

    # --- Table ---

    def register(self, provider: Provider, adapter: Optional[ProviderAdapter] = None) -> None:
        """Add or overwrite a provider by name."""
        with self._lock:
            if provider.is_fallback:
                provider.is_available = True
                for existing in self._providers.values():
                    if existing.is_fallback and existing.name != provider.name:
                        raise ValueError(f"Fallback provider already registered: {existing.name}")
            self._providers[provider.name] = provider
            self._adapters[provider.name] = adapter or ADAPTERS[provider.api_style]

    def get(self, name: str) -> Provider:
        with self._lock:
            provider = self._providers.get(name)
        if provider is None:
            raise UnknownProviderError(name)
        return provider

    def adapter_for(self, name: str) -> ProviderAdapter:
        self.get(name)
        return self._adapters[name]

    def providers(self) -> List[Provider]:
        """All providers, best priority first."""
        with self._lock:
            return sorted(self._providers.values(), key=lambda p: (p.priority, p.name))

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    @property
    def fallback(self) -> Provider:
        with self._lock:
            return next(p for p in self._providers.values() if p.is_fallback)

    def available(self) -> List[Provider]:
        return [p for p in self.providers() if p.is_available]

    # --- Availability ---

    def mark_available(self, name: str, available: bool, error: Optional[str] = None) -> None:
        with self._lock:
            provider = self.get(name)
            if provider.is_fallback:
                return
            provider.is_available = available
            if available:
                provider.failure_count = 0
                provider.last_error = None
            else:
                provider.failure_count += 1
                if error:
                    provider.last_error = error[:200]

    def demote(self, name: str, error: Optional[str] = None) -> Provider:
        """Mark a failed provider unavailable and re-select. Returns the new active provider."""
        with self._lock:
            provider = self.get(name)
            if provider.is_fallback:
                return provider
            self.mark_available(name, False, error)
            new_active = self.select_active()
        logger.warning(f"Provider {provider.display_name} demoted, switching to {new_active.display_name}")
        return new_active

    # --- Selection ---

    def select_active(self) -> Provider:
        """Pick the available provider with the smallest priority, else the fallback."""
        with self._lock:
            candidates = [p for p in self._providers.values() if p.is_available]
            if candidates:
                best = min(candidates, key=lambda p: (p.priority, p.name))
            else:
                best = self.fallback
            if best.name != self._active:
                if self._active:
                    logger.info(f"Active provider: {self._active} → {best.name}")
                self._active = best.name
            return best

    @property
    def active(self) -> Provider:
        with self._lock:
            return self._providers[self._active]
