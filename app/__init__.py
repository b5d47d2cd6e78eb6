"""app/: configuration and error types shared by every pipeline package."""

from app.errors import (
    AutomationError,
    ConfigurationError,
    InvalidInputError,
    ParseError,
    PersistError,
    ProviderError,
    PublishError,
)

__all__ = [
    "AutomationError",
    "ConfigurationError",
    "InvalidInputError",
    "ParseError",
    "PersistError",
    "ProviderError",
    "PublishError",
]
