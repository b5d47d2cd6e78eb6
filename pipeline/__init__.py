"""pipeline/: topic queue, post assembly, publishing and scheduling.

Only the plain data layer is re-exported here; import the service and the
scheduler from their modules (``pipeline.service``, ``pipeline.scheduler``).
"""

from pipeline.state import (
    GeneratedBlogPost,
    GenerationResult,
    PipelineState,
    QueueStatus,
    Topic,
)
from pipeline.topic_queue import TopicQueue

__all__ = [
    "GeneratedBlogPost",
    "GenerationResult",
    "PipelineState",
    "QueueStatus",
    "Topic",
    "TopicQueue",
]
