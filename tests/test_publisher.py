"""Unit tests for persistence and publishing (pipeline.publisher.Publisher)."""

import asyncio
from datetime import datetime, timezone

import aiohttp
import pytest
from pytest_mock import MockerFixture

from app.errors import PersistError, PublishError
from memory.blog_store import InMemoryBlogStore
from pipeline.publisher import Publisher
from pipeline.state import GeneratedBlogPost
from tests.conftest import FailingStore, FakeResponse

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
ENDPOINT = "http://publish.test/api/blogs/publish"


@pytest.fixture
def post() -> GeneratedBlogPost:
    return GeneratedBlogPost(
        id="blog_abc",
        sequence_number=1,
        heading="Blog 1: Working From Anywhere",
        short_description="How remote teams stay productive.",
        body_text="<p>Body</p>",
        image_url="https://img.test/a.jpg",
        topic_id="topic_1",
        slug="working-from-anywhere-1",
        created_at=NOW,
    )


@pytest.fixture
def no_sleep(mocker: MockerFixture):
    return mocker.patch("pipeline.publisher.asyncio.sleep", new=mocker.AsyncMock())


def _publisher(store=None, **kwargs) -> Publisher:
    return Publisher(store or InMemoryBlogStore(), ENDPOINT, api_key="secret", clock=lambda: NOW, **kwargs)


# -----------------------------------------------------------------------------
# publish
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_publish_sends_payload_with_bearer(fake_http, post) -> None:
    session = fake_http(FakeResponse(201, {"ok": True}))

    published_at = await _publisher().publish(post)

    assert published_at == NOW
    call = session.calls[0]
    assert call["url"] == ENDPOINT
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["json"] == post.publish_payload(NOW)


@pytest.mark.asyncio
async def test_publish_without_api_key_sends_no_auth(fake_http, post) -> None:
    session = fake_http(FakeResponse(200, {}))
    await Publisher(InMemoryBlogStore(), ENDPOINT, api_key=None, clock=lambda: NOW).publish(post)
    assert "Authorization" not in session.calls[0]["headers"]


@pytest.mark.asyncio
async def test_server_errors_are_retried(fake_http, no_sleep, post) -> None:
    session = fake_http(FakeResponse(503, text="busy"), FakeResponse(502, text="bad gateway"), FakeResponse(200, {}))

    await _publisher().publish(post)

    assert len(session.calls) == 3
    assert [c.args[0] for c in no_sleep.await_args_list] == [1, 2]


@pytest.mark.asyncio
async def test_client_error_is_not_retried(fake_http, no_sleep, post) -> None:
    session = fake_http(FakeResponse(422, text="invalid heading"))

    with pytest.raises(PublishError) as excinfo:
        await _publisher().publish(post)

    assert excinfo.value.status == 422
    assert len(session.calls) == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_gives_up_after_last_attempt(fake_http, no_sleep, post) -> None:
    fake_http(FakeResponse(500, text="x"), FakeResponse(500, text="x"), FakeResponse(500, text="x"))

    with pytest.raises(PublishError, match="after 3 attempts"):
        await _publisher().publish(post)


@pytest.mark.asyncio
async def test_connection_errors_retried_then_raised(fake_http, no_sleep, post) -> None:
    fake_http(
        aiohttp.ClientConnectionError("refused"),
        asyncio.TimeoutError(),
        aiohttp.ClientConnectionError("refused"),
    )

    with pytest.raises(PublishError, match="unreachable"):
        await _publisher().publish(post)

    assert no_sleep.await_count == 2


# -----------------------------------------------------------------------------
# persist / persist_and_publish
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_persist_failure_aborts_before_publish(fake_http, post) -> None:
    session = fake_http(FakeResponse(200, {}))

    with pytest.raises(PersistError):
        await _publisher(FailingStore()).persist_and_publish(post)

    assert session.calls == []


@pytest.mark.asyncio
async def test_unexpected_store_error_wrapped(post) -> None:
    class ExplodingStore(InMemoryBlogStore):
        def save(self, p):
            raise RuntimeError("disk on fire")

    with pytest.raises(PersistError, match="disk on fire"):
        await _publisher(ExplodingStore()).persist(post)


@pytest.mark.asyncio
async def test_persist_and_publish_marks_published(fake_http, post) -> None:
    fake_http(FakeResponse(200, {}))
    store = InMemoryBlogStore()

    returned = await _publisher(store).persist_and_publish(post)

    assert returned.published is True
    assert returned.published_at == NOW
    stored = store.get(post.id)
    assert stored.published is True
    assert store.counts() == {"total": 1, "published": 1, "drafts": 0}


@pytest.mark.asyncio
async def test_publish_failure_leaves_saved_draft(fake_http, no_sleep, post) -> None:
    fake_http(FakeResponse(400, text="nope"))
    store = InMemoryBlogStore()

    with pytest.raises(PublishError):
        await _publisher(store).persist_and_publish(post)

    assert store.get(post.id).published is False
    assert store.counts()["drafts"] == 1
