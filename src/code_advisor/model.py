"""Chat-completion clients for the upstream model providers.

Every provider exposes the same call: send(system_prompt, history,
user_message) -> assistant text. History items are {"role", "content"}
dicts in chronological order.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from .config import (
    ANTHROPIC_BASE_URL,
    ANTHROPIC_MAX_TOKENS,
    ANTHROPIC_MODEL,
    DEEPSEEK_BASE_URL,
    DEEPSEEK_MODEL,
    OPENAI_BASE_URL,
    OPENAI_MODEL,
    Settings,
    load_settings,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("deepseek", "openai", "azure-openai", "claude")
DEFAULT_PROVIDER = "deepseek"
ANTHROPIC_VERSION = "2023-06-01"


class ModelError(Exception):
    """Error communicating with the model."""


class ChatProvider(Protocol):
    name: str
    model: str

    def send(
        self,
        system_prompt: str,
        history: list[dict[str, str]],
        user_message: str,
    ) -> str: ...

    def close(self) -> None: ...


class _HTTPChatClient:
    """Shared request/response handling over httpx."""

    name = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 60,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> dict:
        if not self.api_key:
            raise ModelError(f"{self.name} API key not configured")

        logger.debug("POST %s (model=%s)", url, self.model)
        try:
            resp = self._client.post(url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException:
            raise ModelError(f"{self.name} request timed out after {self.timeout}s")
        except httpx.ConnectError:
            raise ModelError(f"Cannot connect to {self.name} at {self.base_url}")

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code != 200:
            detail = ""
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                detail = data["error"].get("message", "")
            raise ModelError(
                f"{self.name} returned {resp.status_code}: {detail or resp.text[:200]}"
            )
        if not isinstance(data, dict):
            raise ModelError(f"{self.name} returned an unexpected payload")
        return data


class OpenAICompatibleClient(_HTTPChatClient):
    """Chat completions in the OpenAI wire format."""

    name = "openai"

    def _url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _payload(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def send(
        self,
        system_prompt: str,
        history: list[dict[str, str]],
        user_message: str,
    ) -> str:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": user_message})

        data = self._post(self._url(), self._payload(messages), self._headers())
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            raise ModelError(f"{self.name} response missing choices")


class DeepSeekClient(OpenAICompatibleClient):
    name = "deepseek"

    def __init__(self, api_key: str, model: str = DEEPSEEK_MODEL, base_url: str = DEEPSEEK_BASE_URL, **kwargs):
        super().__init__(api_key, model, base_url, **kwargs)


class OpenAIClient(OpenAICompatibleClient):
    name = "openai"

    def __init__(self, api_key: str, model: str = OPENAI_MODEL, base_url: str = OPENAI_BASE_URL, **kwargs):
        super().__init__(api_key, model, base_url, **kwargs)


class AzureOpenAIClient(OpenAICompatibleClient):
    """Azure deployments use the deployment name in the URL and an api-key header."""

    name = "azure-openai"

    def __init__(self, api_key: str, endpoint: str, deployment: str, api_version: str, **kwargs):
        if not endpoint or not deployment:
            raise ModelError("Azure OpenAI endpoint and deployment must be configured")
        super().__init__(api_key, deployment, endpoint, **kwargs)
        self.api_version = api_version

    def _url(self) -> str:
        return (
            f"{self.base_url}/openai/deployments/{self.model}/chat/completions"
            f"?api-version={self.api_version}"
        )

    def _headers(self) -> dict[str, str]:
        return {"api-key": self.api_key}

    def _payload(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        payload = super()._payload(messages)
        payload.pop("model")
        return payload


class ClaudeClient(_HTTPChatClient):
    """Anthropic messages API. The system prompt travels outside the message list."""

    name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str = ANTHROPIC_MODEL,
        base_url: str = ANTHROPIC_BASE_URL,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        **kwargs,
    ):
        super().__init__(api_key, model, base_url, max_tokens=max_tokens, **kwargs)

    def send(
        self,
        system_prompt: str,
        history: list[dict[str, str]],
        user_message: str,
    ) -> str:
        messages = [
            {"role": "user" if m["role"] == "user" else "assistant", "content": m["content"]}
            for m in history
        ]
        messages.append({"role": "user", "content": user_message})
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": messages,
        }
        headers = {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

        data = self._post(f"{self.base_url}/messages", payload, headers)
        try:
            blocks = data["content"]
            return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        except (KeyError, TypeError, AttributeError):
            raise ModelError("claude response missing content")


def create_provider(name: str, settings: Settings | None = None) -> ChatProvider:
    """Build a provider client from settings."""
    settings = settings or load_settings()
    common = {
        "timeout": settings.timeout_seconds,
        "temperature": settings.temperature,
    }
    if name == "deepseek":
        return DeepSeekClient(settings.deepseek_api_key, max_tokens=settings.max_tokens, **common)
    if name == "openai":
        return OpenAIClient(settings.openai_api_key, max_tokens=settings.max_tokens, **common)
    if name == "azure-openai":
        return AzureOpenAIClient(
            settings.azure_api_key,
            endpoint=settings.azure_endpoint,
            deployment=settings.azure_deployment,
            api_version=settings.azure_api_version,
            max_tokens=settings.max_tokens,
            **common,
        )
    if name == "claude":
        return ClaudeClient(settings.anthropic_api_key, **common)
    raise ModelError(f"Unknown provider {name!r}. Choose from: {', '.join(PROVIDERS)}")
