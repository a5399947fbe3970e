"""
Provider registry, selection and usage-counter tests.

Usage:
    pytest test_provider_registry.py -v
"""

import threading
from datetime import date

import pytest

from advisory.errors import UnknownProviderError
from advisory.schemas import ApiStyle, Provider
from advisory.tools.provider_registry import (
    FALLBACK_PROVIDER,
    CredentialStore,
    ProviderRegistry,
    build_default_providers,
)
from advisory.tools.usage import UsageTracker


def make_registry(settings) -> ProviderRegistry:
    return ProviderRegistry(build_default_providers(settings))


# ─── Provider table ─────────────────────────────────────────────────────────

def test_default_table_order(settings):
    registry = make_registry(settings)
    assert [p.name for p in registry.providers()] == ["openai", "claude", "openrouter", "ollama", FALLBACK_PROVIDER]
    assert registry.fallback.name == FALLBACK_PROVIDER
    assert registry.get("claude").api_style == ApiStyle.ANTHROPIC
    assert registry.get("ollama").requires_api_key is False


def test_fallback_is_active_without_credentials(settings):
    registry = make_registry(settings)
    assert registry.active.name == FALLBACK_PROVIDER
    assert registry.active.is_available


def test_unknown_provider_raises(settings):
    with pytest.raises(UnknownProviderError):
        make_registry(settings).get("gemini")


def test_registry_requires_a_fallback():
    with pytest.raises(ValueError):
        ProviderRegistry([Provider(name="openai", display_name="OpenAI", model="gpt")])


def test_second_fallback_rejected(settings):
    registry = make_registry(settings)
    with pytest.raises(ValueError):
        registry.register(Provider(name="offline", display_name="Offline", model="x", is_fallback=True))


# ─── Selection ──────────────────────────────────────────────────────────────

def test_selection_is_deterministic(settings):
    registry = make_registry(settings)
    registry.mark_available("claude", True)
    registry.mark_available("openrouter", True)
    picks = {registry.select_active().name for _ in range(20)}
    assert picks == {"claude"}


def test_priority_ties_broken_by_name(settings):
    registry = make_registry(settings)
    registry.register(Provider(name="aardvark", display_name="A", model="m", priority=2, is_available=True))
    registry.mark_available("claude", True)
    assert registry.select_active().name == "aardvark"


def test_unavailable_provider_never_selected(settings):
    registry = make_registry(settings)
    for name in ("openai", "claude", "openrouter"):
        registry.mark_available(name, True)
    assert registry.select_active().name == "openai"

    registry.mark_available("openai", False, "401")
    for _ in range(5):
        assert registry.select_active().name != "openai"


def test_demote_moves_to_next_best(settings):
    registry = make_registry(settings)
    registry.mark_available("openai", True)
    registry.mark_available("claude", True)
    registry.select_active()

    new_active = registry.demote("openai", "openai 401: invalid key")
    assert new_active.name == "claude"
    assert registry.active.name == "claude"
    openai = registry.get("openai")
    assert openai.is_available is False
    assert openai.failure_count == 1
    assert openai.last_error == "openai 401: invalid key"


def test_fallback_cannot_be_demoted(settings):
    registry = make_registry(settings)
    registry.demote(FALLBACK_PROVIDER, "boom")
    registry.mark_available(FALLBACK_PROVIDER, False)
    assert registry.fallback.is_available
    assert registry.active.name == FALLBACK_PROVIDER


def test_recovery_resets_failure_count(settings):
    registry = make_registry(settings)
    registry.mark_available("openai", False, "timeout")
    registry.mark_available("openai", True)
    assert registry.get("openai").failure_count == 0
    assert registry.get("openai").last_error is None


# ─── Credentials ────────────────────────────────────────────────────────────

def test_credential_store_never_shows_secrets():
    store = CredentialStore({"openai": "sk-secret", "claude": ""})
    assert store.has("openai")
    assert not store.has("claude")
    assert store.names() == ["openai"]
    assert "sk-secret" not in repr(store)


# ─── Pricing ────────────────────────────────────────────────────────────────

def test_asymmetric_pricing(settings):
    openai = make_registry(settings).get("openai")
    assert openai.cost_for(1000, 1000) == pytest.approx(0.0015 + 0.002)


def test_symmetric_pricing_falls_back_to_cost_per_token():
    provider = Provider(name="p", display_name="P", model="m", cost_per_token=0.001)
    assert provider.cost_for(10, 20) == pytest.approx(0.03)


# ─── Usage counters ─────────────────────────────────────────────────────────

def test_running_mean_equals_arithmetic_mean():
    usage = UsageTracker()
    latencies = [1.2, 0.4, 3.3, 2.0, 0.1]
    for latency in latencies:
        usage.record_request(latency)
    stats = usage.snapshot()
    assert stats.total_requests == len(latencies)
    assert stats.average_response_time == pytest.approx(sum(latencies) / len(latencies))


def test_counters_are_monotonic():
    usage = UsageTracker()
    previous = usage.snapshot()
    for tokens in (10, 0, 250, 5):
        usage.record_tokens(tokens, tokens * 0.001)
        usage.record_request(0.5)
        current = usage.snapshot()
        assert current.total_tokens >= previous.total_tokens
        assert current.total_requests > previous.total_requests
        assert current.total_cost >= previous.total_cost
        previous = current


def test_snapshot_is_a_copy():
    usage = UsageTracker()
    snapshot = usage.snapshot()
    usage.record_tokens(100, 0.1)
    assert snapshot.total_tokens == 0


def test_daily_counters_roll_over():
    today = [date(2025, 3, 1)]
    usage = UsageTracker(today=lambda: today[0])
    usage.record_tokens(100, 0.5)
    usage.record_request(1.0)

    today[0] = date(2025, 3, 2)
    usage.record_request(1.0)
    stats = usage.snapshot()
    assert stats.requests_today == 1
    assert stats.cost_today == 0.0
    assert stats.total_requests == 2
    assert stats.total_cost == pytest.approx(0.5)


def test_concurrent_updates_are_not_lost():
    usage = UsageTracker()

    def worker():
        for _ in range(500):
            usage.record_tokens(1, 0.0)
            usage.record_request(1.0)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = usage.snapshot()
    assert stats.total_tokens == 4000
    assert stats.total_requests == 4000
    assert stats.average_response_time == pytest.approx(1.0)
