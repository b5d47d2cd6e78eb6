"""Extract a ``GenerationResult`` from free-form provider output.

Providers are asked for a bare JSON object but often wrap it in prose or code
fences. The parser takes the span from the first ``{`` to the last ``}``,
decodes it, and validates it against a strict schema. Required fields:

    heading           non-empty string
    shortDescription  non-empty string
    content           non-empty string

Anything else (no braces, invalid JSON, a non-object, a missing or empty
field, a non-string value) fails closed with ``ParseError``; fields are never
partially populated.
"""

import json

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from app.errors import ParseError
from pipeline.state import GenerationResult

logger = structlog.get_logger(__name__)


class _BlogPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    heading: StrictStr = Field(..., min_length=1)
    short_description: StrictStr = Field(..., min_length=1, alias="shortDescription")
    content: StrictStr = Field(..., min_length=1)


def extract_json_object(raw_text: str) -> str:
    """Return the outermost ``{...}`` span of *raw_text*.

    Raises:
        ParseError: If the text holds no brace-delimited span.
    """
    if not raw_text:
        raise ParseError("empty response")
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end <= start:
        raise ParseError("no JSON object found in response")
    return raw_text[start:end + 1]


def parse_generation(raw_text: str, source: str = "unknown") -> GenerationResult:
    """Decode provider output into a ``GenerationResult``.

    Args:
        raw_text: Raw text returned by the provider.
        source: Provider name recorded on the result.

    Raises:
        ParseError: If the structured object is malformed or incomplete.
    """
    candidate = extract_json_object(raw_text)

    try:
        # strict=False admits raw newlines inside strings, which models emit freely.
        decoded = json.loads(candidate, strict=False)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg} at position {e.pos}") from e

    if not isinstance(decoded, dict):
        raise ParseError(f"expected a JSON object, got {type(decoded).__name__}")

    try:
        payload = _BlogPayload.model_validate(decoded)
    except ValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ParseError(f"invalid or missing fields: {', '.join(missing)}") from e

    return GenerationResult(
        heading=payload.heading,
        short_description=payload.short_description,
        body_text=payload.content,
        source=source,
    )
