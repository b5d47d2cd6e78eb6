"""tools/: Provider clients and small text utilities for the blog pipeline."""

from tools.text_providers import (
    HuggingFaceClient,
    OllamaClient,
    OpenAIChatClient,
    ProviderResult,
    TextProviderClient,
    build_text_clients,
)
from tools.image_search import (
    ImageProviderClient,
    ImageSearchResult,
    PexelsClient,
    PixabayClient,
    UnsplashClient,
    build_image_clients,
)
from tools.url_validator import validate_url
from tools.word_count import word_count, word_count_excluding_markup

__all__ = [
    # Text providers
    "HuggingFaceClient",
    "OllamaClient",
    "OpenAIChatClient",
    "ProviderResult",
    "TextProviderClient",
    "build_text_clients",
    # Image providers
    "ImageProviderClient",
    "ImageSearchResult",
    "PexelsClient",
    "PixabayClient",
    "UnsplashClient",
    "build_image_clients",
    # Utilities
    "validate_url",
    "word_count",
    "word_count_excluding_markup",
]
