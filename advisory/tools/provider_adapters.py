"""
Provider adapters: one per chat-completion envelope family.

Each adapter turns (prompt, token budget) into an HTTP request and turns the
provider's JSON response back into a plain Completion. The rest of the core
never branches on provider names; adding a provider that speaks an existing
envelope is a registry entry, adding a new envelope is one adapter here.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import ProviderResponseError
from ..schemas import ApiStyle, Completion, Provider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "你是一位专业的产品研发顾问，为企业提供基于行业分析的研发战略建议。请用中文回答，内容专业、具体、可操作。"

# Returned by the no-network fallback for probes
CANNED_COMPLETION = "演示模式已就绪。"


def _token_count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def _usage_block(data: Dict[str, Any]) -> Dict[str, Any]:
    usage = data.get("usage")
    return usage if isinstance(usage, dict) else {}


def _text_of(content: Any) -> str:
    """Flatten a message body that may be a string or a list of text parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text") or ""))
        return "".join(parts)
    return str(content)


@dataclass
class ProviderRequest:
    url: str
    headers: Dict[str, str]
    payload: Dict[str, Any] = field(default_factory=dict)


class ProviderAdapter:
    """Base envelope adapter."""

    is_remote = True

    def build_request(
        self,
        provider: Provider,
        api_key: Optional[str],
        prompt: str,
        max_tokens: int,
        temperature: float = 0.7,
        system_prompt: Optional[str] = SYSTEM_PROMPT,
    ) -> ProviderRequest:
        raise NotImplementedError

    def extract_completion(self, provider: Provider, data: Dict[str, Any]) -> Completion:
        raise NotImplementedError


class OpenAIChatAdapter(ProviderAdapter):
    """OpenAI /chat/completions envelope (also OpenRouter and Ollama's /v1)."""

    def build_request(self, provider, api_key, prompt, max_tokens, temperature=0.7, system_prompt=SYSTEM_PROMPT):
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        return ProviderRequest(
            url=f"{provider.endpoint.rstrip('/')}/chat/completions",
            headers=headers,
            payload={
                "model": provider.model,
                "messages": messages,
                "max_tokens": min(max_tokens, provider.max_tokens),
                "temperature": temperature,
                "stream": False,
            },
        )

    def extract_completion(self, provider, data):
        # Some gateways return 200 with an error body
        if "error" in data:
            err = data["error"]
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            raise ProviderResponseError(provider.name, f"error body: {message}")
        try:
            text = _text_of(data["choices"][0]["message"]["content"])
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(provider.name, f"unexpected response shape: {e!r}") from e

        usage = _usage_block(data)
        prompt_tokens = _token_count(usage.get("prompt_tokens"))
        completion_tokens = _token_count(usage.get("completion_tokens"))
        total_tokens = _token_count(usage.get("total_tokens")) or (prompt_tokens + completion_tokens)
        return Completion(
            text=text,
            provider=provider.name,
            model=str(data.get("model") or provider.model),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )


class AnthropicMessagesAdapter(ProviderAdapter):
    """Anthropic /messages envelope."""

    def __init__(self, api_version: str = "2023-06-01"):
        self.api_version = api_version

    def build_request(self, provider, api_key, prompt, max_tokens, temperature=0.7, system_prompt=SYSTEM_PROMPT):
        payload: Dict[str, Any] = {
            "model": provider.model,
            "max_tokens": min(max_tokens, provider.max_tokens),
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        return ProviderRequest(
            url=f"{provider.endpoint.rstrip('/')}/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key or "",
                "anthropic-version": self.api_version,
            },
            payload=payload,
        )

    def extract_completion(self, provider, data):
        if data.get("type") == "error" or "error" in data:
            err = data.get("error")
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            raise ProviderResponseError(provider.name, f"error body: {message}")
        content = data.get("content")
        if not isinstance(content, list):
            raise ProviderResponseError(provider.name, "response has no content blocks")
        text = _text_of(content)
        usage = _usage_block(data)
        prompt_tokens = _token_count(usage.get("input_tokens"))
        completion_tokens = _token_count(usage.get("output_tokens"))
        return Completion(
            text=text,
            provider=provider.name,
            model=str(data.get("model") or provider.model),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )


class LocalCannedAdapter(ProviderAdapter):
    """The zero-cost fallback: no network, canned completion."""

    is_remote = False

    def canned_completion(self, provider: Provider) -> Completion:
        return Completion(text=CANNED_COMPLETION, provider=provider.name, model=provider.model)


ADAPTERS: Dict[ApiStyle, ProviderAdapter] = {
    ApiStyle.OPENAI: OpenAIChatAdapter(),
    ApiStyle.ANTHROPIC: AnthropicMessagesAdapter(),
    ApiStyle.LOCAL: LocalCannedAdapter(),
}
