"""Shared data models and pipeline state for blog automation.

This module defines the records that flow through one generation cycle
(``Topic`` → ``GenerationResult`` → ``GeneratedBlogPost``) and the
``PipelineState`` that owns the topic queue contents and the sequence counter.
The models include validation constraints so that an empty heading or body can
never reach the publisher.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TOPIC_CATEGORIES = ("Tips", "News", "Guide", "Update", "Announcement")
DEFAULT_CATEGORY = "Tips"


class Topic(BaseModel):
    """One queued topic.

    Attributes:
        id: Unique identifier assigned when the topic is loaded.
        text: The topic string the blog post is written about.
        keywords: Optional search keywords (deduplicated, order kept).
        category: Blog category the resulting post is filed under.
        processed: Flips to True once, after the derived post was saved and published.
        created_at: When the topic was loaded.
        processed_at: When the topic was marked processed.
        blog_id: Id of the post generated from this topic.
    """

    id: str = Field(..., description="Unique topic identifier")
    text: str = Field(..., min_length=1, description="Topic string")
    keywords: List[str] = Field(default_factory=list, description="Image search keywords")
    category: str = Field(DEFAULT_CATEGORY, description="Blog category")
    processed: bool = Field(False, description="Whether a post was published for this topic")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: Optional[datetime] = None
    blog_id: Optional[str] = None

    @field_validator("keywords")
    @classmethod
    def _dedupe_keywords(cls, value: List[str]) -> List[str]:
        seen = set()
        unique = []
        for keyword in value:
            keyword = keyword.strip()
            if keyword and keyword not in seen:
                seen.add(keyword)
                unique.append(keyword)
        return unique

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value not in TOPIC_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(TOPIC_CATEGORIES)}")
        return value

    @property
    def search_query(self) -> str:
        """Query used for image search: the keywords when present, else the topic."""
        return " ".join(self.keywords) if self.keywords else self.text


class GenerationResult(BaseModel):
    """Structured content produced by a text provider or the template.

    Attributes:
        heading: Post heading (never empty).
        short_description: Teaser text, aimed at 160 characters or fewer.
        body_text: Post body (never empty).
        source: Provider name that produced the content, or ``"template"``.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    heading: str = Field(..., min_length=1)
    short_description: str = Field(..., min_length=1)
    body_text: str = Field(..., min_length=1)
    source: str = Field("template", description="Producing provider or 'template'")


class GeneratedBlogPost(BaseModel):
    """A publishable blog post assembled from one cycle's results."""

    id: str = Field(..., description="Unique post identifier")
    sequence_number: int = Field(..., ge=1, description="Monotonic post number")
    heading: str = Field(..., min_length=1, description="Heading prefixed with 'Blog N: '")
    short_description: str
    body_text: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    topic_id: str
    category: str = DEFAULT_CATEGORY
    slug: str
    created_at: datetime
    published: bool = False
    published_at: Optional[datetime] = None

    def publish_payload(self, published_at: datetime) -> dict:
        """Fields sent to the external publish endpoint."""
        payload = {
            "heading": self.heading,
            "shortDescription": self.short_description,
            "content": self.body_text,
            "publishedAt": published_at.isoformat(),
        }
        if self.image_url:
            payload["imageUrl"] = self.image_url
        return payload


class QueueStatus(BaseModel):
    """Topic counts reported to operators."""

    total: int
    processed: int
    remaining: int


class PipelineState(BaseModel):
    """Mutable state owned by the automation service.

    Only a running cycle mutates it. ``last_sequence`` is the last sequence
    number handed out; numbers are never reused, even when the cycle that drew
    one failed to publish.
    """

    topics: List[Topic] = Field(default_factory=list)
    last_sequence: int = Field(0, ge=0)

    def next_sequence(self) -> int:
        self.last_sequence += 1
        return self.last_sequence
