"""Ordered queue of pending blog topics.

The queue is a view over ``PipelineState.topics``: it keeps insertion order,
hands out the first unprocessed topic, and flips ``processed`` one way only.
It performs no I/O; snapshots are the automation service's job.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from app.errors import InvalidInputError
from pipeline.state import DEFAULT_CATEGORY, PipelineState, QueueStatus, Topic

logger = structlog.get_logger(__name__)

TopicEntry = Union[str, Mapping[str, Any]]


def _new_topic_id() -> str:
    return f"topic_{uuid.uuid4().hex[:12]}"


def _keywords(value: Any, index: int) -> List[str]:
    """A single string is one keyword; lists and tuples are taken as-is."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise InvalidInputError(f"Topic #{index} keywords must be a string or a list, got {type(value).__name__}")


def _build_topic(entry: TopicEntry, index: int, default_category: str) -> Topic:
    if isinstance(entry, str):
        text, keywords, category = entry, [], default_category
    elif isinstance(entry, Mapping):
        text = entry.get("topic") or entry.get("text") or ""
        keywords = _keywords(entry.get("keywords"), index)
        category = entry.get("category") or default_category
    else:
        raise InvalidInputError(f"Topic #{index} must be a string or a mapping, got {type(entry).__name__}")

    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError(f"Topic #{index} is empty")

    try:
        return Topic(id=_new_topic_id(), text=text.strip(), keywords=keywords, category=category)
    except ValidationError as e:
        raise InvalidInputError(f"Topic #{index} is invalid: {e}") from e


class TopicQueue:
    """Insertion-ordered topic queue backed by a ``PipelineState``."""

    def __init__(self, state: Optional[PipelineState] = None) -> None:
        self.state = state if state is not None else PipelineState()

    @property
    def topics(self) -> List[Topic]:
        return self.state.topics

    def load(self, topics: Iterable[TopicEntry], category: str = DEFAULT_CATEGORY) -> List[Topic]:
        """Replace the queue contents with *topics*.

        Every entry gets a fresh id and ``processed = False``. The whole batch
        is validated before anything is replaced, so a blank entry leaves the
        current queue untouched.

        Raises:
            InvalidInputError: If any entry is blank or malformed.
        """
        if isinstance(topics, (str, bytes)):
            raise InvalidInputError("topics must be a sequence of topic entries, not a single string")

        built = [_build_topic(entry, i, category) for i, entry in enumerate(topics)]
        self.state.topics = built
        logger.info("topic_queue.loaded", count=len(built))
        return list(built)

    def next_unprocessed(self) -> Optional[Topic]:
        """Return the first topic with ``processed == False`` without mutating anything."""
        return next((t for t in self.state.topics if not t.processed), None)

    def get(self, topic_id: str) -> Optional[Topic]:
        return next((t for t in self.state.topics if t.id == topic_id), None)

    def mark_processed(self, topic_id: str, blog_id: Optional[str] = None) -> None:
        """Mark the topic *topic_id* processed.

        Unknown ids and already-processed topics are a no-op.
        """
        topic = self.get(topic_id)
        if topic is None:
            logger.debug("topic_queue.mark_processed_unknown", topic_id=topic_id)
            return
        if topic.processed:
            return
        topic.processed = True
        topic.processed_at = datetime.now(timezone.utc)
        topic.blog_id = blog_id
        logger.info("topic_queue.marked_processed", topic_id=topic_id, blog_id=blog_id)

    def status(self) -> QueueStatus:
        total = len(self.state.topics)
        processed = sum(1 for t in self.state.topics if t.processed)
        return QueueStatus(total=total, processed=processed, remaining=total - processed)

    def all_topics(self) -> List[Topic]:
        """All topics, newest first."""
        return list(reversed(self.state.topics))

    def clear(self) -> int:
        removed = len(self.state.topics)
        self.state.topics = []
        logger.info("topic_queue.cleared", removed=removed)
        return removed
