"""Image fetch chain: ordered stock-photo providers, absence allowed.

Providers are tried in their fixed priority order (most permissive rate limit
first). The first provider that returns at least one candidate wins and its
first candidate's URL is used. Unlike the content chain there is no fallback
image: when every provider fails or finds nothing, ``run`` returns ``None``.
It never raises.
"""

from typing import List, Optional, Sequence

import structlog

from app import config
from tools.image_search import IMAGE_PROVIDER_KINDS, ImageProviderClient, build_image_clients

logger = structlog.get_logger(__name__)


class ImageFetchChain:
    """Ordered fallback over image providers."""

    def __init__(self, clients: Sequence[ImageProviderClient]) -> None:
        self.clients: List[ImageProviderClient] = list(clients)

    @classmethod
    def from_config(cls) -> "ImageFetchChain":
        catalogue = config.provider_catalogue(
            config.IMAGE_PROVIDERS,
            config.load_provider_overrides(),
            IMAGE_PROVIDER_KINDS,
        )
        return cls(build_image_clients(config.IMAGE_PROVIDER_ORDER, catalogue))

    @property
    def provider_names(self) -> List[str]:
        return [c.name for c in self.clients]

    async def run(self, query: str) -> Optional[str]:
        if not query or not query.strip():
            logger.warning("image_chain.empty_query")
            return None

        log = logger.bind(query=query)
        for client in self.clients:
            try:
                result = await client.search(query)
            except Exception as e:
                log.error("image_chain.provider_failed", provider=client.name, reason="unexpected",
                          error=str(e), exc_info=True)
                continue

            if not result.ok:
                log.warning("image_chain.provider_failed", provider=client.name,
                            reason=result.error.reason, error=str(result.error))
                continue
            if not result.urls:
                log.info("image_chain.no_results", provider=client.name)
                continue

            url = result.urls[0]
            log.info("image_chain.image_found", provider=client.name, url=url)
            return url

        log.info("image_chain.exhausted", providers_tried=len(self.clients))
        return None
