"""
Advisory Orchestrator: the single entry point of the analysis core.

Flow: build_prompt -> active provider -> transport -> parse_response -> report
Provider failures demote the provider and retry the same prompt on the next
best one; the zero-cost fallback terminates the chain, so generate_analysis()
always returns a schema-valid AnalysisReport. enhance_answer() rides the same
chain for single-answer commentary. Only CredentialInvalid,
UnknownProviderError (configuration) and AnalysisCancelled (deadline) leave
either call.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx

from ..analysis.fallback_report import FallbackReportGenerator
from ..analysis.prompt_builder import build_answer_prompt, build_prompt
from ..analysis.response_parser import PartialParse, UnparseableResponse, parse_response
from ..config import Settings, get_settings
from ..errors import (
    AllProvidersExhausted,
    AnalysisCancelled,
    CredentialInvalid,
    ProviderError,
)
from ..schemas import (
    AnalysisData, AnalysisExtras, AnalysisReport, Provider, ServiceStatus, UsageStats,
)
from ..tools.provider_adapters import AnthropicMessagesAdapter
from ..tools.provider_prober import ProviderProber
from ..tools.provider_registry import CredentialStore, ProviderRegistry, build_default_providers
from ..tools.transport import ProviderTransport
from ..tools.usage import UsageTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdvisoryOrchestrator:
    """Owns the registry, credentials, usage counters and transport for one process.

    Construct once at startup and pass it to call sites. Every collaborator can
    be injected for tests; by default they are built from ``Settings``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ProviderRegistry] = None,
        credentials: Optional[CredentialStore] = None,
        transport: Optional[ProviderTransport] = None,
        usage: Optional[UsageTracker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.usage = usage or UsageTracker()
        self.credentials = credentials or CredentialStore(self.settings.get_seed_credentials())
        self.registry = registry or ProviderRegistry(
            build_default_providers(self.settings),
            adapters={"claude": AnthropicMessagesAdapter(self.settings.anthropic_version)},
        )
        self.transport = transport or ProviderTransport(self.settings, self.usage, client=client)
        self.prober = ProviderProber(self.registry, self.credentials, self.transport, self.settings)
        self.fallback_generator = FallbackReportGenerator(self.settings.default_industry)
        self.last_error: Optional[str] = None

    # ── Provider management ─────────────────────────────────────────────────

    async def initialize(self) -> Dict[str, bool]:
        """Probe every provider that has a credential and select the active one."""
        logger.info("=" * 50)
        logger.info("INITIALIZING AI PROVIDERS")
        logger.info("=" * 50)

        if self.settings.demo_mode:
            logger.info("Demo mode enabled, skipping provider probes")
            results: Dict[str, bool] = {}
        else:
            results = await self.prober.probe_all()

        active = self.registry.select_active()
        available = [p.name for p in self.registry.available()]
        logger.info(f"Available providers: {', '.join(available)} | active: {active.name}")
        return results

    async def configure_service(self, provider_name: str, api_key: str) -> bool:
        """Validate and store a credential for ``provider_name``.

        Raises UnknownProviderError for an unregistered name and
        CredentialInvalid when the probe is rejected. On rejection neither the
        stored credential nor the provider's availability changes.
        """
        provider = self.registry.get(provider_name)

        if not provider.requires_api_key:
            if api_key:
                self.credentials.set(provider.name, api_key)
            self.registry.mark_available(provider.name, True)
            self.registry.select_active()
            logger.info(f"Provider {provider.name} configured (no credential required)")
            return True

        if not api_key or not api_key.strip():
            raise CredentialInvalid(provider.name, "empty credential")

        try:
            await self.prober.probe(provider.name, api_key)
        except ProviderError as e:
            self.last_error = str(e)
            logger.warning(f"Credential for {provider.name} rejected: {e}")
            raise CredentialInvalid(provider.name, e.detail) from e

        self.credentials.set(provider.name, api_key)
        self.registry.mark_available(provider.name, True)
        active = self.registry.select_active()
        logger.info(f"Provider {provider.name} configured, active provider: {active.name}")
        return True

    def list_providers(self) -> List[Provider]:
        return [p.model_copy() for p in self.registry.providers()]

    # ── Analysis ────────────────────────────────────────────────────────────

    async def generate_analysis(
        self,
        data: AnalysisData,
        extras: Optional[AnalysisExtras] = None,
        timeout: Optional[float] = None,
    ) -> AnalysisReport:
        """Produce a report for ``data``. Never fails on provider or parse errors.

        ``timeout`` (or ANALYSIS_DEADLINE_SECONDS) bounds the whole call; when it
        expires the in-flight request is cancelled and AnalysisCancelled raised.
        """
        in_flight: Dict[str, str] = {}
        started = time.monotonic()
        report = await self._bounded(self._run_analysis(data, extras, in_flight), in_flight, timeout)

        elapsed = time.monotonic() - started
        self.usage.record_request(elapsed)
        logger.info(f"Analysis complete in {elapsed:.2f}s ({len(report.recommendations)} recommendations)")
        return report

    async def enhance_answer(
        self,
        question: str,
        answer: str,
        context: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Short expert commentary on one questionnaire answer.

        Uses the same failover chain as generate_analysis with the
        ANSWER_MAX_TOKENS budget; the fallback provider yields canned text.
        """
        in_flight: Dict[str, str] = {}
        started = time.monotonic()
        text = await self._bounded(self._run_answer(question, answer, context, in_flight), in_flight, timeout)

        elapsed = time.monotonic() - started
        self.usage.record_request(elapsed)
        logger.info(f"Answer analysis complete in {elapsed:.2f}s ({len(text)} chars)")
        return text

    async def _bounded(self, work: Awaitable[T], in_flight: Dict[str, str], timeout: Optional[float]) -> T:
        deadline = self.settings.analysis_deadline_seconds if timeout is None else timeout
        if not deadline or deadline <= 0:
            return await work
        try:
            return await asyncio.wait_for(work, timeout=deadline)
        except asyncio.TimeoutError as e:
            provider = in_flight.get("provider", self.registry.active.name)
            cancelled = AnalysisCancelled(provider, deadline)
            self.last_error = str(cancelled)
            logger.warning(str(cancelled))
            raise cancelled from e

    async def _with_failover(
        self,
        attempt: Callable[[Provider], Awaitable[T]],
        fallback: Callable[[str], T],
        in_flight: Dict[str, str],
    ) -> T:
        """Run ``attempt`` on the active provider, demoting and retrying on failure."""
        errors: Dict[str, str] = {}

        # At most one attempt per registered provider
        for _ in range(len(self.registry)):
            provider = self.registry.active
            if provider.is_fallback:
                return fallback("no remote provider available")

            in_flight["provider"] = provider.name
            try:
                return await attempt(provider)
            except ProviderError as e:
                error = str(e)
                logger.warning(f"{provider.display_name} failed ({e.kind}): {e.detail}")
            except Exception as e:
                error = f"{provider.name}: {type(e).__name__}: {e}"
                logger.error(f"{provider.display_name} failed unexpectedly: {e}", exc_info=True)
            errors[provider.name] = error
            self.last_error = error
            self.registry.demote(provider.name, error)

        # Only reachable when providers are re-enabled while the loop runs
        exhausted = AllProvidersExhausted(errors)
        logger.error(str(exhausted))
        return fallback("all providers exhausted")

    async def _run_analysis(
        self,
        data: AnalysisData,
        extras: Optional[AnalysisExtras],
        in_flight: Dict[str, str],
    ) -> AnalysisReport:
        if self.settings.demo_mode:
            return self._fallback_report(data, "demo mode")

        prompt = build_prompt(data, extras, default_industry=self.settings.default_industry)
        return await self._with_failover(
            lambda provider: self._analyze_with(provider, prompt, data),
            lambda reason: self._fallback_report(data, reason),
            in_flight,
        )

    async def _run_answer(
        self,
        question: str,
        answer: str,
        context: Optional[str],
        in_flight: Dict[str, str],
    ) -> str:
        def canned(reason: str) -> str:
            logger.info(f"Serving offline answer analysis ({reason})")
            return self.fallback_generator.build_answer_analysis(question, answer)

        if self.settings.demo_mode:
            return canned("demo mode")

        prompt = build_answer_prompt(question, answer, context)

        async def attempt(provider: Provider) -> str:
            completion = await self.transport.complete(
                provider,
                self.registry.adapter_for(provider.name),
                self.credentials.get(provider.name),
                prompt,
                max_tokens=self.settings.answer_max_tokens,
            )
            return completion.text.strip()

        return await self._with_failover(attempt, canned, in_flight)

    async def _analyze_with(self, provider: Provider, prompt: str, data: AnalysisData) -> AnalysisReport:
        """Call one provider, re-asking while the reply has no recognisable structure."""
        adapter = self.registry.adapter_for(provider.name)
        api_key = self.credentials.get(provider.name)
        attempts = max(1, self.settings.parse_max_attempts)

        for attempt in range(1, attempts + 1):
            completion = await self.transport.complete(
                provider, adapter, api_key, prompt, max_tokens=self.settings.analysis_max_tokens,
            )
            try:
                result = parse_response(completion.text, summary_chars=self.settings.summary_fallback_chars)
            except Exception as e:
                logger.error(f"Parser failed on {provider.name} response (attempt {attempt}/{attempts}): {e}", exc_info=True)
                continue

            if isinstance(result, UnparseableResponse):
                if attempt < attempts:
                    logger.warning(f"{provider.name}: no recognisable headings, retrying ({attempt}/{attempts})")
                    continue
                logger.warning(f"{provider.name}: no recognisable headings, using synthetic report")
            elif isinstance(result, PartialParse):
                logger.info(f"{provider.name}: partial parse, defaulted {', '.join(sorted(result.missing_fields))}")
            else:
                logger.info(f"{provider.name}: structured parse")
            return result.to_report()

        return self._fallback_report(data, "response parsing failed")

    def _fallback_report(self, data: AnalysisData, reason: str) -> AnalysisReport:
        logger.info(f"Serving offline report ({reason})")
        return self.fallback_generator.build_report(data)

    # ── Status ──────────────────────────────────────────────────────────────

    def get_service_status(self) -> ServiceStatus:
        active = self.registry.active
        usage = self.usage.snapshot()
        return ServiceStatus(
            is_online=active.is_available and not active.is_fallback,
            current_provider=active.name,
            available_providers=[p.display_name for p in self.registry.available()],
            total_usage=usage.total_tokens,
            estimated_cost=usage.total_cost,
            last_error=self.last_error,
        )

    def get_usage_stats(self) -> UsageStats:
        return self.usage.snapshot()
