"""Exception taxonomy for the blog automation pipeline.

Provider and parse failures are recoverable: the fallback chains turn them into
failed attempts and move on to the next provider. Persistence and publish
failures abort the current cycle for its topic, which stays queued.
"""

from typing import Optional


class AutomationError(Exception):
    """Base class for every error raised by the pipeline."""


class InvalidInputError(AutomationError, ValueError):
    """A caller handed the pipeline something it cannot accept (e.g. a blank topic)."""


class ConfigurationError(AutomationError):
    """Configuration could not be interpreted (bad schedule time, unknown provider)."""


class ProviderError(AutomationError):
    """A single provider call failed.

    Attributes:
        provider: Name of the provider that failed.
        reason: One of ``network``, ``timeout``, ``status``, ``auth``, ``empty``,
            ``response``.
        status: HTTP status code when ``reason == "status"``.
    """

    def __init__(
        self,
        provider: str,
        reason: str,
        message: str = "",
        status: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.reason = reason
        self.status = status
        detail = f": {message}" if message else ""
        super().__init__(f"{provider} failed ({reason}){detail}")


class ParseError(AutomationError):
    """Provider output did not contain a complete, well-formed blog object."""


class PersistError(AutomationError):
    """The blog store refused or failed to save a post."""


class PublishError(AutomationError):
    """The external publish endpoint did not accept a post."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)
