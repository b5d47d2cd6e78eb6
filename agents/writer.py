"""Content generation chain: ordered text providers with a template fallback.

Given a topic, the chain builds one shared prompt and tries each configured
text provider in its fixed priority order. The first provider whose output
parses into a complete ``GenerationResult`` wins; later providers are never
called. Provider and parse failures are logged once each and skipped. When
every provider has failed, the deterministic template produces the result,
so ``run`` always returns a well-formed ``GenerationResult`` and never raises.
"""

from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from agents.fallback_template import generate_fallback
from agents.response_parser import parse_generation
from app import config
from app.errors import ParseError
from pipeline.state import GenerationResult
from tools.text_providers import TEXT_PROVIDER_KINDS, TextProviderClient, build_text_clients

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
PROMPT_PATH = Path(__file__).parent / "prompts" / "blog_writer_prompt.txt"


def load_prompt_template(path: Path = PROMPT_PATH) -> str:
    """Load the writer prompt template from disk."""
    if not path.exists():
        logger.critical("writer.prompt_file_missing", path=str(path))
        raise FileNotFoundError(f"Writer prompt not found at '{path}'")
    return path.read_text(encoding="utf-8")


def build_prompt(template: str, topic: str, word_count: int = config.TARGET_WORD_COUNT) -> str:
    return template.format(topic=topic, word_count=word_count)


class ContentGenerationChain:
    """Ordered fallback over text providers, terminated by the template."""

    def __init__(
        self,
        clients: Sequence[TextProviderClient],
        *,
        word_count: int = config.TARGET_WORD_COUNT,
        prompt_template: Optional[str] = None,
    ) -> None:
        self.clients: List[TextProviderClient] = list(clients)
        self.word_count = word_count
        # Loaded up front so a missing prompt file fails at startup, not mid-cycle.
        self.prompt_template = prompt_template if prompt_template is not None else load_prompt_template()

    @classmethod
    def from_config(cls) -> "ContentGenerationChain":
        catalogue = config.provider_catalogue(
            config.TEXT_PROVIDERS,
            config.load_provider_overrides(),
            TEXT_PROVIDER_KINDS,
        )
        return cls(build_text_clients(config.TEXT_PROVIDER_ORDER, catalogue))

    @property
    def provider_names(self) -> List[str]:
        return [c.name for c in self.clients]

    async def run(self, topic: str) -> GenerationResult:
        prompt = build_prompt(self.prompt_template, topic, self.word_count)
        log = logger.bind(topic=topic)

        for position, client in enumerate(self.clients, 1):
            result = await self._attempt(client, prompt, log.bind(provider=client.name, position=position))
            if result is not None:
                log.info("content_chain.provider_succeeded", provider=client.name, position=position)
                return result

        log.warning("content_chain.using_template", providers_tried=len(self.clients))
        return generate_fallback(topic)

    async def _attempt(self, client: TextProviderClient, prompt: str, log) -> Optional[GenerationResult]:
        """Run one provider; ``None`` means "advance to the next one"."""
        try:
            outcome = await client.generate(prompt)
        except Exception as e:
            log.error("content_chain.provider_failed", reason="unexpected", error=str(e), exc_info=True)
            return None

        if not outcome.ok:
            log.warning(
                "content_chain.provider_failed",
                reason=outcome.error.reason if outcome.error else "empty",
                error=str(outcome.error),
            )
            return None

        try:
            return parse_generation(outcome.text, source=client.name)
        except ParseError as e:
            log.warning("content_chain.provider_failed", reason="parse", error=str(e))
            return None
