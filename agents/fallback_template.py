"""Deterministic last-resort content for the generation chain.

``generate_fallback`` builds a complete post from a fixed section skeleton
with the topic substituted in. It performs no I/O and reads no clock, so the
same topic always yields byte-identical output.
"""

import html

from app.config import FALLBACK_MAX_BODY_CHARS
from pipeline.state import GenerationResult

TEMPLATE_SOURCE = "template"
_PLACEHOLDER_SUBJECT = "Today's Topic"

_BODY_TEMPLATE = """\
<h2>Introduction to {t}</h2>
<p>{t} has become increasingly important in today's world. This guide explores the main aspects of {t} and provides practical insights.</p>
<h2>What is {t}?</h2>
<p>{t} is an area of interest that touches many parts of daily life. Understanding its fundamentals helps anyone who wants to stay informed.</p>
<h2>Key Aspects of {t}</h2>
<p>Several elements matter when discussing {t}:</p>
<ul>
<li>Understanding the core concepts</li>
<li>Recognizing current trends and developments</li>
<li>Identifying practical applications</li>
<li>Considering future implications</li>
</ul>
<h2>Why {t} Matters</h2>
<p>{t} plays a role in many contexts and keeps evolving alongside new technology. It affects individuals and organizations alike.</p>
<h2>Practical Applications of {t}</h2>
<p>Knowing how to apply what you learn about {t} can help with:</p>
<ol>
<li>Personal development</li>
<li>Professional growth</li>
<li>Strategic planning</li>
<li>Innovation initiatives</li>
</ol>
<h2>The Future of {t}</h2>
<p>{t} shows promising developments. Following these trends will matter more and more in the years ahead.</p>
<h2>Conclusion</h2>
<p>{t} remains a relevant subject worth continued attention. By understanding its dimensions we can better appreciate its impact and potential.</p>
"""


def _truncate_lines(text: str, limit: int) -> str:
    """Cut *text* to at most *limit* characters on a line boundary."""
    if len(text) <= limit:
        return text
    cut = text.rfind("\n", 0, limit)
    if cut <= 0:
        return text[:limit]
    return text[:cut + 1]


def generate_fallback(topic: str, max_body_chars: int = FALLBACK_MAX_BODY_CHARS) -> GenerationResult:
    """Return template content for *topic*. Never raises."""
    subject = " ".join(str(topic).split()) or _PLACEHOLDER_SUBJECT
    body = _BODY_TEMPLATE.format(t=html.escape(subject, quote=False))
    return GenerationResult(
        heading=f"Understanding {subject}",
        short_description=f"An informative guide exploring {subject} and its key aspects.",
        body_text=_truncate_lines(body, max(1, max_body_chars)),
        source=TEMPLATE_SOURCE,
    )
