"""Blog automation service: one generation-and-publish cycle per call.

The service owns the ``PipelineState`` (topic queue + sequence counter) and is
the only thing that mutates it. Every mutation happens under a single asyncio
lock, so a scheduled cycle and a manual ``generate_now`` never overlap: the
second caller waits for the first cycle to finish, then runs its own.

Cycle:
    next unprocessed topic → content chain → image chain → assemble post
    → persist → publish → mark topic processed

A topic is marked processed only when persistence and publish both succeeded
in the same cycle. Otherwise it keeps its place in the queue and is picked up
again by the next cycle. Sequence numbers are drawn when a post is assembled
and never handed out twice.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import structlog

from agents.image_agent import ImageFetchChain
from agents.writer import ContentGenerationChain
from app import config
from app.errors import PersistError, PublishError
from memory.blog_store import JsonBlogStore
from memory.state_store import StateStore
from pipeline.assembler import build_post
from pipeline.publisher import Publisher
from pipeline.state import DEFAULT_CATEGORY, GeneratedBlogPost, PipelineState, Topic
from pipeline.topic_queue import TopicEntry, TopicQueue
from tools.word_count import word_count_excluding_markup

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlogAutomationService:
    def __init__(
        self,
        content_chain: ContentGenerationChain,
        image_chain: ImageFetchChain,
        publisher: Publisher,
        *,
        state: Optional[PipelineState] = None,
        state_store: Optional[StateStore] = None,
        schedule: Sequence[str] = config.SCHEDULE_TIMES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.content_chain = content_chain
        self.image_chain = image_chain
        self.publisher = publisher
        self.state_store = state_store
        if state is None and state_store is not None:
            state = state_store.load()
        self.state = state if state is not None else PipelineState()
        self.queue = TopicQueue(self.state)
        self.schedule = list(schedule)
        self.clock = clock
        self.automation_active = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls) -> "BlogAutomationService":
        """Wire the service from ``app.config``."""
        return cls(
            content_chain=ContentGenerationChain.from_config(),
            image_chain=ImageFetchChain.from_config(),
            publisher=Publisher(JsonBlogStore(config.BLOG_STORE_PATH)),
            state_store=StateStore(config.PIPELINE_STATE_PATH),
        )

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def load_topics(
        self,
        topics: Iterable[TopicEntry],
        category: str = DEFAULT_CATEGORY,
    ) -> List[Topic]:
        """Replace the queue with *topics*. Raises ``InvalidInputError`` on a blank entry."""
        async with self._lock:
            created = self.queue.load(topics, category)
            self._save_state()
            return created

    async def generate_now(self) -> Optional[GeneratedBlogPost]:
        """Run one cycle now, waiting for any cycle already in progress.

        Returns:
            The published post, or ``None`` when the queue has nothing left.

        Raises:
            PersistError: The post could not be saved; the topic stays queued.
            PublishError: The endpoint did not accept the post; the topic stays queued.
        """
        async with self._lock:
            return await self._run_cycle()

    async def queue_status(self) -> Dict[str, Any]:
        """Topic counts, stored post counts and scheduler info.

        Post counts are read off the event loop; ``blogs`` is ``None`` when the
        store cannot be read.
        """
        try:
            blogs = await asyncio.to_thread(self.publisher.store.counts)
        except PersistError as e:
            logger.warning("service.blog_counts_unavailable", error=str(e))
            blogs = None
        return {
            "topics": self.queue.status().model_dump(),
            "blogs": blogs,
            "automation": {
                "active": self.automation_active,
                "running": self.is_running,
                "schedule": list(self.schedule),
                "last_sequence": self.state.last_sequence,
            },
        }

    def list_topics(self) -> List[Topic]:
        return self.queue.all_topics()

    async def clear_topics(self) -> int:
        async with self._lock:
            removed = self.queue.clear()
            self._save_state()
            return removed

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _run_cycle(self) -> Optional[GeneratedBlogPost]:
        topic = self.queue.next_unprocessed()
        if topic is None:
            logger.info("cycle.queue_empty")
            return None

        log = logger.bind(topic_id=topic.id, topic=topic.text)
        log.info("cycle.started")

        result = await self.content_chain.run(topic.text)
        image_url = await self.image_chain.run(topic.search_query)

        sequence_number = self.state.next_sequence()
        post = build_post(result, image_url, topic, sequence_number, now=self.clock())
        log = log.bind(
            post_id=post.id,
            sequence_number=sequence_number,
            content_source=result.source,
            image_found=image_url is not None,
        )
        log.info("cycle.post_assembled", words=word_count_excluding_markup(post.body_text))

        try:
            await self.publisher.persist_and_publish(post)
        except (PersistError, PublishError) as e:
            stage = "persist" if isinstance(e, PersistError) else "publish"
            log.error("cycle.aborted", stage=stage, error=str(e))
            self._save_state()
            raise

        self.queue.mark_processed(topic.id, blog_id=post.id)
        self._save_state()
        log.info("cycle.completed", heading=post.heading)
        return post

    def _save_state(self) -> None:
        if self.state_store is None:
            return
        try:
            self.state_store.save(self.state)
        except (OSError, TypeError, ValueError) as e:
            logger.error("service.state_snapshot_failed", error=str(e))
