"""
LLM client abstraction layer to support multiple providers.

This module provides one blocking ``complete(prompt, history, system_prompt)``
call over three providers: the Gemini proxy (plain HTTP POST), OpenAI and
Ollama.  The rest of the application only ever sees text or a
``CompletionError``.

History items are ``{"text": str, "isUser": bool}`` dicts, the same shape the
chat transcript is stored in.
"""

from __future__ import annotations
import logging
import os
from typing import List, Dict, Any, Optional
from abc import ABC, abstractmethod

import httpx
from ollama import AsyncClient as OllamaAsyncClient, ResponseError as OllamaResponseError
from openai import AsyncOpenAI, OpenAIError

from . import config
from .errors import CompletionError

log = logging.getLogger(__name__)

History = List[Dict[str, Any]]


def combine_prompt(prompt: str, system_prompt: str = "") -> str:
    if system_prompt and system_prompt.strip():
        return f"{system_prompt.strip()}\n\nUser message:\n{prompt}"
    return prompt


def to_gemini_contents(history: History) -> List[Dict[str, Any]]:
    return [
        {"role": "user" if m.get("isUser") else "model", "parts": [{"text": m.get("text", "")}]}
        for m in history or []
    ]


def to_chat_messages(prompt: str, history: History, system_prompt: str = "") -> List[Dict[str, str]]:
    messages = []
    if system_prompt and system_prompt.strip():
        messages.append({"role": "system", "content": system_prompt.strip()})
    for m in history or []:
        messages.append(
            {"role": "user" if m.get("isUser") else "assistant", "content": m.get("text", "")}
        )
    messages.append({"role": "user", "content": prompt})
    return messages


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def complete(
        self, prompt: str, history: Optional[History] = None, system_prompt: str = ""
    ) -> str:
        """Send one blocking completion request and return the reply text."""


class ProxyClient(LLMClient):
    """Gemini proxy client: one JSON POST, reply in ``{"text": ...}``."""

    def __init__(
        self,
        url: str = None,
        timeout: float = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or config.PROXY_HTTP_URL
        self.timeout = timeout or config.HTTP_TIMEOUT_S
        self._http_client = http_client

    async def complete(
        self, prompt: str, history: Optional[History] = None, system_prompt: str = ""
    ) -> str:
        combined = combine_prompt(prompt, system_prompt)
        contents = to_gemini_contents(history or [])
        contents.append({"role": "user", "parts": [{"text": combined}]})
        payload = {"prompt": combined, "history": contents}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise CompletionError(f"Gemini proxy unreachable: {exc}") from exc

        if response.is_error:
            detail = response.text.strip() or response.reason_phrase
            raise CompletionError(f"Gemini proxy error: {detail}", status=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise CompletionError("Gemini proxy returned invalid JSON", status=response.status_code) from exc
        text = data.get("text") if isinstance(data, dict) else None
        return text if isinstance(text, str) else ""


class OpenAIClient(LLMClient):
    """OpenAI client implementation."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        # Use provided API key or get from environment
        api_key = api_key or config.OPENAI_API_KEY or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OpenAI API key is required. Set OPENAI_API_KEY environment variable or pass api_key parameter.")

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model or config.get_model_for_provider("openai")

    async def complete(
        self, prompt: str, history: Optional[History] = None, system_prompt: str = ""
    ) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=to_chat_messages(prompt, history or [], system_prompt),
                temperature=config.OPENAI_MODEL_PARAMS.get("temperature", 0.7),
                max_tokens=config.OPENAI_MODEL_PARAMS.get("max_tokens", 4096),
            )
        except OpenAIError as exc:
            raise CompletionError(f"OpenAI error: {exc}", status=getattr(exc, "status_code", None)) from exc
        return response.choices[0].message.content or ""


class OllamaClient(LLMClient):
    """Ollama client implementation."""

    def __init__(self, host: str | None = None, model: str | None = None):
        self.client = OllamaAsyncClient(host=host or config.OLLAMA_BASE_URL)
        self.model = model or config.get_model_for_provider("ollama")

    async def complete(
        self, prompt: str, history: Optional[History] = None, system_prompt: str = ""
    ) -> str:
        try:
            response = await self.client.chat(
                model=self.model,
                messages=to_chat_messages(prompt, history or [], system_prompt),
            )
        except (httpx.HTTPError, ConnectionError) as exc:
            raise CompletionError(f"Ollama unreachable: {exc}") from exc
        except OllamaResponseError as exc:
            raise CompletionError(f"Ollama error: {exc}", status=getattr(exc, "status_code", None)) from exc
        return response.message.content or ""


def get_llm_client(provider: str | None = None) -> LLMClient:
    """Factory function to get the appropriate LLM client based on configuration."""
    provider = (provider or config.LLM_PROVIDER).lower()

    if provider == "proxy":
        return ProxyClient()
    elif provider == "openai":
        return OpenAIClient()
    elif provider == "ollama":
        return OllamaClient()
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")


# Lazily created shared client
_llm_client = None


def set_llm_client(client: Optional[LLMClient]) -> None:
    global _llm_client
    _llm_client = client


async def complete(prompt: str, history: Optional[History] = None, system_prompt: str = "") -> str:
    """
    Unified completion call that works with any configured LLM provider.

    A provider that cannot be built (unknown name, missing key) is reported
    as a ``CompletionError`` like any other failed call.
    """
    global _llm_client
    if _llm_client is None:
        try:
            _llm_client = get_llm_client()
        except ValueError as exc:
            raise CompletionError(f"LLM provider unavailable: {exc}") from exc

    log.debug("Blocking completion via %s", type(_llm_client).__name__)
    return await _llm_client.complete(prompt, history or [], system_prompt)
