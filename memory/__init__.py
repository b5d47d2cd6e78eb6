"""memory/: persistence for generated posts and pipeline state snapshots."""

from memory.blog_store import BlogStore, InMemoryBlogStore, JsonBlogStore
from memory.state_store import StateStore

__all__ = [
    "BlogStore",
    "InMemoryBlogStore",
    "JsonBlogStore",
    "StateStore",
]
