"""
Provider probing: validate a credential with a minimal completion.

Probes are independent: each one only writes its own provider's
availability flag, so initialize() runs them concurrently behind a small
semaphore and one failing provider never blocks the others.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from ..config import Settings
from ..errors import ProviderError
from .provider_registry import CredentialStore, ProviderRegistry
from .transport import ProviderTransport

logger = logging.getLogger(__name__)

PROBE_PROMPT = "测试连接"


class ProviderProber:
    def __init__(
        self,
        registry: ProviderRegistry,
        credentials: CredentialStore,
        transport: ProviderTransport,
        settings: Settings,
    ):
        self.registry = registry
        self.credentials = credentials
        self.transport = transport
        self.settings = settings

    async def probe(self, name: str, api_key: Optional[str]) -> None:
        """Issue one minimal request. Raises ProviderError when the provider rejects it."""
        provider = self.registry.get(name)
        await self.transport.complete(
            provider,
            self.registry.adapter_for(name),
            api_key,
            PROBE_PROMPT,
            max_tokens=self.settings.probe_max_tokens,
            timeout=self.settings.probe_timeout,
            system_prompt=None,
        )

    def _probe_targets(self) -> List[str]:
        """Providers with a stored credential, keyless providers that are enabled, and the fallback."""
        targets = []
        for provider in self.registry.providers():
            if provider.is_fallback:
                targets.append(provider.name)
            elif provider.requires_api_key:
                if self.credentials.has(provider.name):
                    targets.append(provider.name)
            elif provider.name == "ollama" and self.settings.use_ollama:
                targets.append(provider.name)
        return targets

    async def probe_all(self) -> Dict[str, bool]:
        """Probe every target concurrently and write back availability."""
        semaphore = asyncio.Semaphore(max(1, self.settings.probe_concurrency))
        targets = self._probe_targets()

        async def _probe_one(name: str) -> bool:
            async with semaphore:
                try:
                    await self.probe(name, self.credentials.get(name))
                except ProviderError as e:
                    logger.warning(f"Provider {name} unavailable: {e}")
                    self.registry.mark_available(name, False, str(e))
                    return False
                except Exception as e:
                    logger.error(f"Probe of {name} failed unexpectedly: {e}", exc_info=True)
                    self.registry.mark_available(name, False, f"{type(e).__name__}: {e}")
                    return False
                self.registry.mark_available(name, True)
                logger.info(f"Provider {name} available")
                return True

        results = await asyncio.gather(*(_probe_one(name) for name in targets))
        return dict(zip(targets, results))
