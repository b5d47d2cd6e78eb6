"""Shared fixtures and fakes for the blog pipeline tests.

HTTP is never touched: provider and publisher tests patch ``aiohttp.ClientSession``
with ``FakeSession``; chain and service tests use stub clients instead.
"""

import json
from typing import Any, List, Optional

import pytest
from pytest_mock import MockerFixture

from agents.image_agent import ImageFetchChain
from agents.writer import ContentGenerationChain
from app.config import ProviderSpec
from app.errors import PersistError, ProviderError, PublishError
from memory.blog_store import InMemoryBlogStore
from pipeline.publisher import Publisher
from pipeline.service import BlogAutomationService
from tools.image_search import ImageSearchResult
from tools.text_providers import ProviderResult

VALID_JSON = json.dumps(
    {
        "heading": "Working From Anywhere",
        "shortDescription": "How remote teams stay productive.",
        "content": "<h2>Intro</h2><p>Remote work is here to stay.</p>",
    }
)


# -----------------------------------------------------------------------------
# Fake aiohttp session
# -----------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status = status
        self._payload = payload
        self._text = text if text is not None else json.dumps(payload)

    async def json(self, content_type=None) -> Any:
        # Text-only responses decode like aiohttp does, raising on non-JSON bodies.
        if self._payload is None:
            return json.loads(self._text)
        return self._payload

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False


class FakeSession:
    """Returns queued responses in order; queued exceptions are raised instead."""

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[dict] = []

    def _next(self, method: str, url: str, kwargs: dict) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self._next("POST", url, kwargs)

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._next("GET", url, kwargs)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False


@pytest.fixture
def fake_http(mocker: MockerFixture):
    """Patch ``aiohttp.ClientSession``; call the fixture with the responses to serve."""

    def _install(*responses: Any) -> FakeSession:
        session = FakeSession(list(responses))
        mocker.patch("aiohttp.ClientSession", return_value=session)
        return session

    return _install


# -----------------------------------------------------------------------------
# Stub provider clients
# -----------------------------------------------------------------------------


def make_spec(name: str, kind: str = "openai_chat", credential_env: Optional[str] = None,
              requires_credential: bool = True) -> ProviderSpec:
    return ProviderSpec(
        name=name,
        kind=kind,
        endpoint=f"https://{name}.test/v1",
        requires_credential=requires_credential,
        credential_env=credential_env,
        model=f"{name}-model",
    )


class StubTextClient:
    def __init__(self, name: str, text: Optional[str] = None, reason: Optional[str] = None,
                 raises: Optional[Exception] = None) -> None:
        self.name = name
        self.text = text
        self.reason = reason
        self.raises = raises
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> ProviderResult:
        self.prompts.append(prompt)
        if self.raises is not None:
            raise self.raises
        if self.reason is not None:
            return ProviderResult(provider=self.name, error=ProviderError(self.name, self.reason, "stubbed"))
        return ProviderResult(provider=self.name, text=self.text)

    @property
    def calls(self) -> int:
        return len(self.prompts)


class StubImageClient:
    def __init__(self, name: str, urls: Optional[List[str]] = None, reason: Optional[str] = None,
                 raises: Optional[Exception] = None) -> None:
        self.name = name
        self.urls = urls or []
        self.reason = reason
        self.raises = raises
        self.queries: List[str] = []

    async def search(self, query: str) -> ImageSearchResult:
        self.queries.append(query)
        if self.raises is not None:
            raise self.raises
        if self.reason is not None:
            return ImageSearchResult(provider=self.name, error=ProviderError(self.name, self.reason, "stubbed"))
        return ImageSearchResult(provider=self.name, urls=list(self.urls))


# -----------------------------------------------------------------------------
# Publisher / store doubles
# -----------------------------------------------------------------------------


class StubPublisher(Publisher):
    """Real persistence, scripted publish outcome."""

    def __init__(self, store, fail_publish: bool = False) -> None:
        super().__init__(store, endpoint="http://publish.test/api/blogs/publish", retry_delays=(0,))
        self.fail_publish = fail_publish
        self.published: List[str] = []

    async def publish(self, post):
        if self.fail_publish:
            raise PublishError("publish endpoint down", status=503)
        self.published.append(post.id)
        return self.clock()


class FailingStore(InMemoryBlogStore):
    def save(self, post) -> None:
        raise PersistError("disk full")


# -----------------------------------------------------------------------------
# Service fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryBlogStore:
    return InMemoryBlogStore()


@pytest.fixture
def working_text_client() -> StubTextClient:
    return StubTextClient("groq", text=VALID_JSON)


@pytest.fixture
def working_image_client() -> StubImageClient:
    return StubImageClient("pixabay", urls=["https://cdn.pixabay.test/photo-1.jpg"])


@pytest.fixture
def make_service(store, working_text_client, working_image_client):
    """Factory: build a service around stub clients; override any collaborator."""

    def _build(text_clients=None, image_clients=None, publisher=None, **kwargs) -> BlogAutomationService:
        return BlogAutomationService(
            content_chain=ContentGenerationChain(
                text_clients if text_clients is not None else [working_text_client]
            ),
            image_chain=ImageFetchChain(
                image_clients if image_clients is not None else [working_image_client]
            ),
            publisher=publisher if publisher is not None else StubPublisher(store),
            schedule=["09:00", "15:00"],
            **kwargs,
        )

    return _build
