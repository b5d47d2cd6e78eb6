"""Blog assembly: turn one cycle's results into a publishable post.

``build_post`` is pure construction. The caller owns the sequence counter and
passes the number in; the only ambient input is the creation timestamp, which
can be injected.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from pipeline.state import GeneratedBlogPost, GenerationResult, Topic

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_MAX_SLUG_BASE = 80


def slugify(text: str, suffix: Optional[str] = None) -> str:
    """Lowercase *text*, collapse non-alphanumerics to ``-``, append *suffix*."""
    base = _SLUG_STRIP.sub("-", text.lower()).strip("-")[:_MAX_SLUG_BASE].rstrip("-") or "post"
    return f"{base}-{suffix}" if suffix else base


def numbered_heading(heading: str, sequence_number: int) -> str:
    return f"Blog {sequence_number}: {heading}"


def build_post(
    result: GenerationResult,
    image_url: Optional[str],
    topic: Topic,
    sequence_number: int,
    now: Optional[datetime] = None,
) -> GeneratedBlogPost:
    """Assemble a ``GeneratedBlogPost`` with ``published = False``."""
    return GeneratedBlogPost(
        id=f"blog_{uuid.uuid4().hex[:12]}",
        sequence_number=sequence_number,
        heading=numbered_heading(result.heading, sequence_number),
        short_description=result.short_description,
        body_text=result.body_text,
        image_url=image_url or None,
        topic_id=topic.id,
        category=topic.category,
        slug=slugify(result.heading, str(sequence_number)),
        created_at=now or datetime.now(timezone.utc),
        published=False,
    )
