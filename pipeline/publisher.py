import asyncio
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

import aiohttp
import structlog

from app.config import PUBLISH_API_KEY, PUBLISH_ENDPOINT, PUBLISH_TIMEOUT_SECONDS
from app.errors import PersistError, PublishError
from memory.blog_store import BlogStore
from pipeline.state import GeneratedBlogPost

logger = structlog.get_logger(__name__)

_RETRY_DELAYS = (1, 2, 4)  # seconds; one entry per attempt


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Publisher:
    """Persists posts to the blog store and notifies the publish endpoint.

    ``persist`` must succeed before ``publish`` is attempted; the automation
    service calls them in that order through ``persist_and_publish``.
    """

    def __init__(
        self,
        store: BlogStore,
        endpoint: str = PUBLISH_ENDPOINT,
        *,
        api_key: Optional[str] = PUBLISH_API_KEY,
        timeout: float = PUBLISH_TIMEOUT_SECONDS,
        retry_delays: Sequence[float] = _RETRY_DELAYS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.retry_delays = list(retry_delays) or [0]
        self.clock = clock

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def persist(self, post: GeneratedBlogPost) -> None:
        """Save *post* through the store, off the event loop.

        Raises:
            PersistError: If the store fails for any reason.
        """
        try:
            await asyncio.to_thread(self.store.save, post)
        except PersistError:
            logger.error("publisher.persist_failed", post_id=post.id, exc_info=True)
            raise
        except Exception as e:
            logger.error("publisher.persist_failed", post_id=post.id, error=str(e), exc_info=True)
            raise PersistError(f"Could not persist post {post.id}: {e}") from e

    async def publish(self, post: GeneratedBlogPost) -> datetime:
        """Send *post*'s displayable fields to the publish endpoint.

        Server errors and connection failures are retried; client errors are not.

        Returns:
            The ``publishedAt`` timestamp that was sent.

        Raises:
            PublishError: If the endpoint never accepted the post.
        """
        published_at = self.clock()
        body = post.publish_payload(published_at)
        max_attempts = len(self.retry_delays)

        for attempt in range(max_attempts):
            last_attempt = attempt == max_attempts - 1
            try:
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    async with session.post(self.endpoint, json=body, headers=self._headers()) as resp:
                        if 200 <= resp.status < 300:
                            logger.info(
                                "publisher.published",
                                post_id=post.id,
                                sequence_number=post.sequence_number,
                                attempt=attempt + 1,
                            )
                            return published_at

                        detail = (await resp.text())[:200]
                        if 400 <= resp.status < 500:
                            logger.error("publisher.rejected", post_id=post.id, status=resp.status, detail=detail)
                            raise PublishError(f"Publish rejected with HTTP {resp.status}: {detail}", status=resp.status)

                        if last_attempt:
                            logger.error("publisher.failed", post_id=post.id, status=resp.status, attempts=max_attempts)
                            raise PublishError(
                                f"Publish failed with HTTP {resp.status} after {max_attempts} attempts",
                                status=resp.status,
                            )
                        logger.warning(
                            "publisher.retrying",
                            post_id=post.id,
                            status=resp.status,
                            attempt=attempt + 1,
                            delay=self.retry_delays[attempt],
                        )

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if last_attempt:
                    logger.error("publisher.unreachable", post_id=post.id, error=str(e), attempts=max_attempts)
                    raise PublishError(f"Publish endpoint unreachable: {str(e) or e.__class__.__name__}") from e
                logger.warning(
                    "publisher.retrying",
                    post_id=post.id,
                    error=str(e),
                    attempt=attempt + 1,
                    delay=self.retry_delays[attempt],
                )

            await asyncio.sleep(self.retry_delays[attempt])

        raise PublishError("Unexpected exit from publish retry loop")

    async def persist_and_publish(self, post: GeneratedBlogPost) -> GeneratedBlogPost:
        """Persist, publish, then record the published flag.

        A persistence failure aborts before publishing. After a successful
        publish the stored copy is updated; a failure of that update is logged
        only, since the post is already live.
        """
        await self.persist(post)
        published_at = await self.publish(post)

        post.published = True
        post.published_at = published_at
        try:
            await asyncio.to_thread(self.store.save, post)
        except Exception as e:
            logger.warning("publisher.status_update_failed", post_id=post.id, error=str(e))
        return post
