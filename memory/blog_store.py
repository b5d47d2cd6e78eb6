"""Persistence collaborator for generated blog posts.

The pipeline only needs a small contract from its datastore: save a post,
read posts back, and report counts for the status view. Two implementations
are provided:

    InMemoryBlogStore : process-local dict, used by tests and dry runs
    JsonBlogStore     : single JSON file with atomic, lock-protected writes

Both raise ``PersistError`` when a save cannot be completed. Saving a post
whose id already exists replaces the stored copy (the publisher re-saves a
post after flipping ``published``).
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError

from app.config import BLOG_STORE_PATH
from app.errors import PersistError
from memory.json_file import read_json, write_json_atomic
from pipeline.state import GeneratedBlogPost

logger = structlog.get_logger(__name__)


class BlogStore:
    """Contract every blog store implements."""

    def save(self, post: GeneratedBlogPost) -> None:
        raise NotImplementedError

    def get(self, post_id: str) -> Optional[GeneratedBlogPost]:
        raise NotImplementedError

    def list_posts(self) -> List[GeneratedBlogPost]:
        raise NotImplementedError

    def counts(self) -> Dict[str, int]:
        """Return ``{"total", "published", "drafts"}`` post counts."""
        posts = self.list_posts()
        published = sum(1 for p in posts if p.published)
        return {"total": len(posts), "published": published, "drafts": len(posts) - published}


class InMemoryBlogStore(BlogStore):
    def __init__(self) -> None:
        self._posts: Dict[str, GeneratedBlogPost] = {}
        self._lock = threading.RLock()

    def save(self, post: GeneratedBlogPost) -> None:
        with self._lock:
            self._posts[post.id] = post.model_copy(deep=True)

    def get(self, post_id: str) -> Optional[GeneratedBlogPost]:
        with self._lock:
            post = self._posts.get(post_id)
            return post.model_copy(deep=True) if post else None

    def list_posts(self) -> List[GeneratedBlogPost]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._posts.values()]


class JsonBlogStore(BlogStore):
    """All posts in one JSON document: ``{"posts": [...]}`` in insertion order."""

    def __init__(self, path: Path = BLOG_STORE_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self.logger = logger.bind(path=str(self.path))

    def _load(self) -> List[GeneratedBlogPost]:
        try:
            data = read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistError(f"Blog store at {self.path} is unreadable: {e}") from e
        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get("posts"), list):
            raise PersistError(f"Blog store at {self.path} has an invalid format")
        try:
            return [GeneratedBlogPost.model_validate(p) for p in data["posts"]]
        except ValidationError as e:
            raise PersistError(f"Blog store at {self.path} holds an invalid post: {e}") from e

    def save(self, post: GeneratedBlogPost) -> None:
        with self._lock:
            posts = self._load()
            for i, existing in enumerate(posts):
                if existing.id == post.id:
                    posts[i] = post
                    break
            else:
                posts.append(post)

            try:
                write_json_atomic(self.path, {"posts": [p.model_dump(mode="json") for p in posts]})
            except (OSError, TypeError, ValueError) as e:
                self.logger.error("blog_store.write_failed", post_id=post.id, error=str(e))
                raise PersistError(f"Could not write blog store: {e}") from e

            self.logger.info("blog_store.saved", post_id=post.id, total=len(posts))

    def get(self, post_id: str) -> Optional[GeneratedBlogPost]:
        with self._lock:
            return next((p for p in self._load() if p.id == post_id), None)

    def list_posts(self) -> List[GeneratedBlogPost]:
        with self._lock:
            return self._load()
