"""Centralized configuration for the blog automation pipeline.

Loads environment variables from a .env file and provides typed constants.
Provider specs are static: the built-in catalogue below can be overridden
per provider from a YAML file (``PROVIDERS_CONFIG_PATH``).
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

# Load environment variables from .env file (if present).
# Does not override already-set environment variables.
load_dotenv()

logger = structlog.get_logger(__name__)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------
SCHEDULE_TIMES: List[str] = _split_csv(os.getenv("BLOG_SCHEDULE_TIMES", "09:00,15:00"))
SCHEDULE_TIMEZONE: str = os.getenv("BLOG_SCHEDULE_TIMEZONE", "UTC")

# ---------------------------------------------------------------------------
# Provider ordering (fixed at startup, never adaptive)
# ---------------------------------------------------------------------------
TEXT_PROVIDER_ORDER: List[str] = _split_csv(
    os.getenv("TEXT_PROVIDER_ORDER", "groq,together,huggingface")
)
IMAGE_PROVIDER_ORDER: List[str] = _split_csv(
    os.getenv("IMAGE_PROVIDER_ORDER", "pixabay,pexels,unsplash")
)

# ---------------------------------------------------------------------------
# Generation parameters
# ---------------------------------------------------------------------------
PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))
MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "2000"))
GENERATION_TEMPERATURE: float = float(os.getenv("GENERATION_TEMPERATURE", "0.7"))
TARGET_WORD_COUNT: int = int(os.getenv("TARGET_WORD_COUNT", "600"))
IMAGE_RESULT_LIMIT: int = int(os.getenv("IMAGE_RESULT_LIMIT", "3"))

# Upper bound on the template body; the template is cut on a line boundary.
FALLBACK_MAX_BODY_CHARS: int = 3000

OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.1:8b")

# ---------------------------------------------------------------------------
# Publishing & persistence
# ---------------------------------------------------------------------------
PUBLISH_ENDPOINT: str = os.getenv("PUBLISH_ENDPOINT", "http://localhost:3000/api/blogs/publish")
PUBLISH_API_KEY: Optional[str] = os.getenv("PUBLISH_API_KEY") or None
PUBLISH_TIMEOUT_SECONDS: float = float(os.getenv("PUBLISH_TIMEOUT_SECONDS", "30"))

OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", "./outputs"))
BLOG_STORE_PATH: Path = Path(os.getenv("BLOG_STORE_PATH", str(OUTPUT_DIR / "blogs.json")))
PIPELINE_STATE_PATH: Path = Path(
    os.getenv("PIPELINE_STATE_PATH", str(OUTPUT_DIR / "pipeline_state.json"))
)

PROVIDERS_CONFIG_PATH: str = os.getenv("PROVIDERS_CONFIG_PATH", "config/providers.yaml")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


# ---------------------------------------------------------------------------
# Provider specs
# ---------------------------------------------------------------------------
class ProviderSpec(BaseModel):
    """Static description of one external provider.

    Attributes:
        name: Key used in the priority order lists.
        kind: Request/response shape the client speaks (``openai_chat``,
            ``huggingface``, ``ollama``, ``pixabay``, ``pexels``, ``unsplash``).
        endpoint: Base URL of the provider API.
        requires_credential: Whether a call without a credential must fail fast.
        credential_env: Environment variable holding the credential.
        model: Model identifier for text providers.
    """

    name: str = Field(..., min_length=1)
    kind: str = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)
    requires_credential: bool = True
    credential_env: Optional[str] = None
    model: Optional[str] = None

    def credential(self) -> Optional[str]:
        """Return the configured credential, or ``None`` if unset or blank."""
        if not self.credential_env:
            return None
        return os.getenv(self.credential_env) or None


TEXT_PROVIDERS: Dict[str, ProviderSpec] = {
    "groq": ProviderSpec(
        name="groq",
        kind="openai_chat",
        endpoint="https://api.groq.com/openai/v1/chat/completions",
        credential_env="GROQ_API_KEY",
        model="llama-3.3-70b-versatile",
    ),
    "together": ProviderSpec(
        name="together",
        kind="openai_chat",
        endpoint="https://api.together.xyz/v1/chat/completions",
        credential_env="TOGETHER_API_KEY",
        model="mistralai/Mixtral-8x7B-Instruct-v0.1",
    ),
    "huggingface": ProviderSpec(
        name="huggingface",
        kind="huggingface",
        endpoint="https://api-inference.huggingface.co/models/mistralai/Mixtral-8x7B-Instruct-v0.1",
        credential_env="HUGGINGFACE_API_KEY",
    ),
    "ollama": ProviderSpec(
        name="ollama",
        kind="ollama",
        endpoint=OLLAMA_BASE_URL,
        requires_credential=False,
        model=OLLAMA_MODEL,
    ),
}

IMAGE_PROVIDERS: Dict[str, ProviderSpec] = {
    # Free tiers: Pixabay 5000/h, Pexels 200/h, Unsplash 50/h.
    "pixabay": ProviderSpec(
        name="pixabay",
        kind="pixabay",
        endpoint="https://pixabay.com/api/",
        credential_env="PIXABAY_API_KEY",
    ),
    "pexels": ProviderSpec(
        name="pexels",
        kind="pexels",
        endpoint="https://api.pexels.com/v1/search",
        credential_env="PEXELS_API_KEY",
    ),
    "unsplash": ProviderSpec(
        name="unsplash",
        kind="unsplash",
        endpoint="https://api.unsplash.com/search/photos",
        credential_env="UNSPLASH_ACCESS_KEY",
    ),
}


def load_provider_overrides(config_path: str = PROVIDERS_CONFIG_PATH) -> List[ProviderSpec]:
    """Load provider spec overrides from a YAML list.

    A missing or malformed file is not fatal: the built-in catalogue is used.
    """
    if not os.path.exists(config_path):
        logger.debug("provider_overrides.not_found", path=config_path)
        return []

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("provider_overrides.unreadable", path=config_path, error=str(e))
        return []

    if not isinstance(data, list):
        logger.error("provider_overrides.invalid_format", path=config_path, expected="list")
        return []

    specs: List[ProviderSpec] = []
    for entry in data:
        try:
            specs.append(ProviderSpec.model_validate(entry))
        except ValidationError as e:
            logger.error("provider_overrides.invalid_entry", entry=entry, error=str(e))
    logger.info("provider_overrides.loaded", path=config_path, count=len(specs))
    return specs


def provider_catalogue(
    defaults: Dict[str, ProviderSpec],
    overrides: List[ProviderSpec],
    kinds: set,
) -> Dict[str, ProviderSpec]:
    """Merge overrides into *defaults*, keeping only specs whose kind is in *kinds*."""
    catalogue = dict(defaults)
    for spec in overrides:
        if spec.kind in kinds:
            catalogue[spec.name] = spec
    return catalogue
