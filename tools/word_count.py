"""tools/word_count.py

Word counts reported in cycle logs against ``TARGET_WORD_COUNT``.

Post bodies are HTML, from providers and the template alike, so tags are
replaced by spaces before counting.
"""

from __future__ import annotations

import re

_WORD = re.compile(r"\b\w+\b")
_TAG = re.compile(r"<[^>]+>")


def word_count(text: str) -> int:
    """Count maximal runs of word characters; 0 for empty input."""
    return len(_WORD.findall(text)) if text else 0


def word_count_excluding_markup(text: str) -> int:
    """Like `word_count`, ignoring anything inside ``<...>`` tags."""
    return word_count(_TAG.sub(" ", text)) if text else 0
