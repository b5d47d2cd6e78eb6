"""tools/url_validator.py

Format check for image candidate URLs.

Only absolute http/https URLs with a host are accepted. No request is made:
providers are trusted to serve what they index, and anything malformed is
dropped before it can reach a post.
"""

from __future__ import annotations

from urllib.parse import urlparse

_ALLOWED_SCHEMES = frozenset({"http", "https"})


def validate_url(url: object) -> bool:
    """Return True if `url` is an absolute http/https URL with a host.

    Non-strings, blank strings and URLs containing whitespace are rejected.
    """
    if not isinstance(url, str):
        return False
    candidate = url.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
        parsed.port  # out-of-range ports raise ValueError
    except ValueError:
        return False
    return parsed.scheme.lower() in _ALLOWED_SCHEMES and bool(parsed.hostname)
