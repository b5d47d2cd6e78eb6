"""
tools/image_search.py
=====================
Stock-photo search clients for the image chain.

Each client returns an ``ImageSearchResult`` holding the candidate URLs in the
order the provider ranked them (possibly none). For each candidate the
largest web-sized rendition is picked: renditions are capped near 2000px
(Pexels `large2x`, Unsplash `regular`) and the unprocessed originals are only
a last resort. Calls never raise for expected failures; the error travels
in the result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Type

import aiohttp
import structlog

from app.config import IMAGE_RESULT_LIMIT, PROVIDER_TIMEOUT_SECONDS, ProviderSpec
from app.errors import ConfigurationError, ProviderError
from tools.url_validator import validate_url

logger = structlog.get_logger(__name__)


@dataclass
class ImageSearchResult:
    """Outcome of one image provider call."""

    provider: str
    urls: List[str] = field(default_factory=list)
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _best_rendition(candidate: dict, keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        url = candidate.get(key)
        if validate_url(url):
            return url
    return None


class ImageProviderClient:
    """Base class: credential check, GET request, error mapping."""

    # Key holding the candidate list in the response body.
    results_key: str = ""
    # Rendition keys in preference order, largest web-sized first.
    rendition_keys: Sequence[str] = ()

    def __init__(
        self,
        spec: ProviderSpec,
        *,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        result_limit: int = IMAGE_RESULT_LIMIT,
    ) -> None:
        self.spec = spec
        self.timeout = timeout
        self.result_limit = result_limit

    @property
    def name(self) -> str:
        return self.spec.name

    async def search(self, query: str) -> ImageSearchResult:
        credential = self.spec.credential()
        if self.spec.requires_credential and not credential:
            return self._failed("auth", f"{self.spec.credential_env or 'credential'} is not set")

        try:
            data = await self._get_json(
                params=self._params(query, credential),
                headers=self._headers(credential),
            )
        except ProviderError as e:
            return ImageSearchResult(provider=self.name, error=e)
        except asyncio.TimeoutError:
            return self._failed("timeout", f"no response within {self.timeout}s")
        except aiohttp.ClientError as e:
            return self._failed("network", str(e) or e.__class__.__name__)

        candidates = data.get(self.results_key) if isinstance(data, dict) else None
        if not isinstance(candidates, list):
            return self._failed("response", f"missing '{self.results_key}' list")

        urls = []
        for candidate in candidates:
            if isinstance(candidate, dict):
                url = self._candidate_url(candidate)
                if url:
                    urls.append(url)
        return ImageSearchResult(provider=self.name, urls=urls)

    def _params(self, query: str, credential: Optional[str]) -> Dict[str, str]:
        return {"query": query, "per_page": str(self.result_limit)}

    def _headers(self, credential: Optional[str]) -> Dict[str, str]:
        return {}

    def _candidate_url(self, candidate: dict) -> Optional[str]:
        return _best_rendition(candidate, self.rendition_keys)

    def _failed(self, reason: str, message: str) -> ImageSearchResult:
        return ImageSearchResult(provider=self.name, error=ProviderError(self.name, reason, message))

    async def _get_json(self, params: Dict[str, str], headers: Dict[str, str]) -> object:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.get(self.spec.endpoint, params=params, headers=headers) as resp:
                if resp.status != 200:
                    raise ProviderError(self.name, "status", f"HTTP {resp.status}", status=resp.status)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise ProviderError(self.name, "response", f"body is not JSON: {e}") from e


class PixabayClient(ImageProviderClient):
    results_key = "hits"
    rendition_keys = ("largeImageURL", "webformatURL")

    def _params(self, query: str, credential: Optional[str]) -> Dict[str, str]:
        return {
            "key": credential or "",
            "q": query,
            "image_type": "photo",
            "safesearch": "true",
            # Pixabay rejects per_page below 3.
            "per_page": str(max(3, self.result_limit)),
        }


class PexelsClient(ImageProviderClient):
    results_key = "photos"
    # `original` is the unresized upload, often several MB.
    rendition_keys = ("large2x", "large", "original")

    def _headers(self, credential: Optional[str]) -> Dict[str, str]:
        return {"Authorization": credential or ""}

    def _candidate_url(self, candidate: dict) -> Optional[str]:
        return _best_rendition(candidate.get("src") or {}, self.rendition_keys)


class UnsplashClient(ImageProviderClient):
    results_key = "results"
    rendition_keys = ("regular", "full", "raw")

    def _params(self, query: str, credential: Optional[str]) -> Dict[str, str]:
        return {"query": query, "per_page": str(self.result_limit), "orientation": "landscape"}

    def _headers(self, credential: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Client-ID {credential or ''}"}

    def _candidate_url(self, candidate: dict) -> Optional[str]:
        return _best_rendition(candidate.get("urls") or {}, self.rendition_keys)


_CLIENT_KINDS: Dict[str, Type[ImageProviderClient]] = {
    "pixabay": PixabayClient,
    "pexels": PexelsClient,
    "unsplash": UnsplashClient,
}

IMAGE_PROVIDER_KINDS = set(_CLIENT_KINDS)


def build_image_clients(
    order: List[str],
    catalogue: Dict[str, ProviderSpec],
    **client_kwargs,
) -> List[ImageProviderClient]:
    """Instantiate image clients for *order*, keeping that order.

    Raises:
        ConfigurationError: If a name is not in *catalogue* or its kind is unknown.
    """
    clients: List[ImageProviderClient] = []
    for name in order:
        spec = catalogue.get(name)
        if spec is None:
            raise ConfigurationError(f"Unknown image provider '{name}'")
        client_cls = _CLIENT_KINDS.get(spec.kind)
        if client_cls is None:
            raise ConfigurationError(f"Image provider '{name}' has unsupported kind '{spec.kind}'")
        clients.append(client_cls(spec, **client_kwargs))
    logger.debug("image_providers.built", order=[c.name for c in clients])
    return clients
