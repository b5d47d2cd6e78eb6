"""
tools/text_providers.py
=======================
Text-generation provider clients for the content chain.

Every client speaks one request/response shape and exposes a single
coroutine that never raises for expected failures:

    result = await client.generate(prompt)
    if result.ok:
        raw_text = result.text

Failures (missing credential, network error, timeout, non-2xx status, empty
or unrecognisable response body) come back as ``ProviderResult.error``. The
chain decides what to do with them; clients never retry.

Supported kinds:
    openai_chat  : OpenAI-compatible chat completions (Groq, Together AI)
    huggingface  : Hugging Face inference API text generation
    ollama       : local Ollama model through langchain-ollama
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Type

import aiohttp
import structlog
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from app.config import (
    GENERATION_TEMPERATURE,
    MAX_OUTPUT_TOKENS,
    PROVIDER_TIMEOUT_SECONDS,
    ProviderSpec,
)
from app.errors import ConfigurationError, ProviderError

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a professional blog writer. Always respond with valid JSON only, "
    "no additional text or explanation."
)

# ---------------------------------------------------------------------------
# Public result type
# ---------------------------------------------------------------------------


@dataclass
class ProviderResult:
    """Outcome of one text provider call: either ``text`` or ``error``."""

    provider: str
    text: Optional[str] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class TextProviderClient:
    """Base class: credential check, timeout and error mapping.

    Subclasses implement ``_request`` and may raise ``ProviderError``,
    ``aiohttp.ClientError`` or ``asyncio.TimeoutError``.
    """

    def __init__(
        self,
        spec: ProviderSpec,
        *,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        temperature: float = GENERATION_TEMPERATURE,
    ) -> None:
        self.spec = spec
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature

    @property
    def name(self) -> str:
        return self.spec.name

    async def generate(self, prompt: str) -> ProviderResult:
        credential = self.spec.credential()
        if self.spec.requires_credential and not credential:
            return self._failed("auth", f"{self.spec.credential_env or 'credential'} is not set")

        try:
            text = await self._request(prompt, credential)
        except ProviderError as e:
            return ProviderResult(provider=self.name, error=e)
        except asyncio.TimeoutError:
            return self._failed("timeout", f"no response within {self.timeout}s")
        except aiohttp.ClientError as e:
            return self._failed("network", str(e) or e.__class__.__name__)

        if not text or not text.strip():
            return self._failed("empty", "provider returned no text")
        return ProviderResult(provider=self.name, text=text)

    async def _request(self, prompt: str, credential: Optional[str]) -> str:
        raise NotImplementedError

    def _failed(self, reason: str, message: str) -> ProviderResult:
        return ProviderResult(provider=self.name, error=ProviderError(self.name, reason, message))

    async def _post_json(self, payload: dict, headers: Dict[str, str]) -> object:
        """POST *payload* to the spec endpoint and return the decoded JSON body."""
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.post(self.spec.endpoint, json=payload, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    raise ProviderError(self.name, "status", body[:200], status=resp.status)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    # Gateways and maintenance pages answer 200 with HTML.
                    raise ProviderError(self.name, "response", f"body is not JSON: {e}") from e


def _bearer_headers(credential: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if credential:
        headers["Authorization"] = f"Bearer {credential}"
    return headers


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------


class OpenAIChatClient(TextProviderClient):
    """OpenAI-compatible ``/chat/completions`` endpoint (Groq, Together AI)."""

    async def _request(self, prompt: str, credential: Optional[str]) -> str:
        payload = {
            "model": self.spec.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }
        data = await self._post_json(payload, _bearer_headers(credential))
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, "response", f"unexpected body shape: {e!r}") from e


class HuggingFaceClient(TextProviderClient):
    """Hugging Face inference API, text-generation task."""

    async def _request(self, prompt: str, credential: Optional[str]) -> str:
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": self.max_output_tokens,
                "temperature": self.temperature,
                "return_full_text": False,
            },
        }
        data = await self._post_json(payload, _bearer_headers(credential))
        try:
            return data[0]["generated_text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, "response", f"unexpected body shape: {e!r}") from e


class OllamaClient(TextProviderClient):
    """Local Ollama model via ``langchain_ollama.ChatOllama``."""

    async def _request(self, prompt: str, credential: Optional[str]) -> str:
        llm = ChatOllama(
            model=self.spec.model,
            base_url=self.spec.endpoint,
            temperature=self.temperature,
            num_predict=self.max_output_tokens,
        )
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise
        except Exception as e:
            # ChatOllama surfaces httpx/ollama errors; all of them mean "unreachable".
            raise ProviderError(self.name, "network", str(e) or e.__class__.__name__) from e
        content = response.content
        return content if isinstance(content, str) else str(content)


_CLIENT_KINDS: Dict[str, Type[TextProviderClient]] = {
    "openai_chat": OpenAIChatClient,
    "huggingface": HuggingFaceClient,
    "ollama": OllamaClient,
}

TEXT_PROVIDER_KINDS = set(_CLIENT_KINDS)


def build_text_clients(
    order: List[str],
    catalogue: Dict[str, ProviderSpec],
    **client_kwargs,
) -> List[TextProviderClient]:
    """Instantiate clients for *order*, keeping that order.

    Raises:
        ConfigurationError: If a name is not in *catalogue* or its kind is unknown.
    """
    clients: List[TextProviderClient] = []
    for name in order:
        spec = catalogue.get(name)
        if spec is None:
            raise ConfigurationError(f"Unknown text provider '{name}'")
        client_cls = _CLIENT_KINDS.get(spec.kind)
        if client_cls is None:
            raise ConfigurationError(f"Text provider '{name}' has unsupported kind '{spec.kind}'")
        clients.append(client_cls(spec, **client_kwargs))
    logger.debug("text_providers.built", order=[c.name for c in clients])
    return clients
