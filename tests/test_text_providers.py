"""Unit tests for text provider clients (tools.text_providers).

HTTP is faked by patching ``aiohttp.ClientSession``; Ollama by patching
``ChatOllama`` where the module looks it up.
"""

import asyncio

import aiohttp
import pytest
from pytest_mock import MockerFixture

from app.config import TEXT_PROVIDERS
from app.errors import ConfigurationError
from tests.conftest import VALID_JSON, FakeResponse, make_spec
from tools.text_providers import (
    SYSTEM_PROMPT,
    HuggingFaceClient,
    OllamaClient,
    OpenAIChatClient,
    build_text_clients,
)


@pytest.fixture
def groq_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("TEST_GROQ_KEY", "gsk-test")
    return "gsk-test"


@pytest.fixture
def chat_client(groq_key) -> OpenAIChatClient:
    return OpenAIChatClient(make_spec("groq", credential_env="TEST_GROQ_KEY"), max_output_tokens=2000, temperature=0.7)


def _chat_body(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


# -----------------------------------------------------------------------------
# OpenAI-compatible chat
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_chat_client_returns_message_content(fake_http, chat_client) -> None:
    session = fake_http(FakeResponse(200, _chat_body(VALID_JSON)))

    result = await chat_client.generate("Write about Remote Work")

    assert result.ok
    assert result.text == VALID_JSON
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://groq.test/v1"
    assert call["headers"]["Authorization"] == "Bearer gsk-test"
    assert call["json"]["model"] == "groq-model"
    assert call["json"]["max_tokens"] == 2000
    assert call["json"]["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Write about Remote Work"},
    ]


@pytest.mark.asyncio
async def test_missing_credential_fails_before_network(fake_http, monkeypatch) -> None:
    """No key, no request: the attempt fails with reason 'auth'."""
    monkeypatch.delenv("TEST_GROQ_KEY", raising=False)
    session = fake_http()
    client = OpenAIChatClient(make_spec("groq", credential_env="TEST_GROQ_KEY"))

    result = await client.generate("prompt")

    assert not result.ok
    assert result.error.reason == "auth"
    assert session.calls == []


@pytest.mark.asyncio
async def test_non_2xx_status_is_a_status_failure(fake_http, chat_client) -> None:
    fake_http(FakeResponse(429, text="rate limited"))

    result = await chat_client.generate("prompt")

    assert result.error.reason == "status"
    assert result.error.status == 429


@pytest.mark.asyncio
async def test_timeout_is_reported(fake_http, chat_client) -> None:
    fake_http(asyncio.TimeoutError())
    result = await chat_client.generate("prompt")
    assert result.error.reason == "timeout"


@pytest.mark.asyncio
async def test_connection_error_is_network_failure(fake_http, chat_client) -> None:
    fake_http(aiohttp.ClientConnectionError("connection refused"))
    result = await chat_client.generate("prompt")
    assert result.error.reason == "network"
    assert "connection refused" in str(result.error)


@pytest.mark.asyncio
async def test_unexpected_body_shape(fake_http, chat_client) -> None:
    fake_http(FakeResponse(200, {"choices": []}))
    result = await chat_client.generate("prompt")
    assert result.error.reason == "response"


@pytest.mark.asyncio
async def test_html_body_is_response_failure(fake_http, chat_client) -> None:
    """A 200 gateway page is a failed attempt, not an exception."""
    fake_http(FakeResponse(200, text="<html>gateway</html>"))

    result = await chat_client.generate("prompt")

    assert not result.ok
    assert result.error.reason == "response"


@pytest.mark.asyncio
async def test_blank_text_is_empty_failure(fake_http, chat_client) -> None:
    fake_http(FakeResponse(200, _chat_body("   ")))
    result = await chat_client.generate("prompt")
    assert result.error.reason == "empty"


# -----------------------------------------------------------------------------
# Hugging Face
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_huggingface_generated_text(fake_http, monkeypatch) -> None:
    monkeypatch.setenv("TEST_HF_KEY", "hf-test")
    session = fake_http(FakeResponse(200, [{"generated_text": VALID_JSON}]))
    client = HuggingFaceClient(make_spec("huggingface", kind="huggingface", credential_env="TEST_HF_KEY"))

    result = await client.generate("Write about Gardening")

    assert result.text == VALID_JSON
    body = session.calls[0]["json"]
    assert body["inputs"] == "Write about Gardening"
    assert body["parameters"]["return_full_text"] is False


# -----------------------------------------------------------------------------
# Ollama
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ollama_needs_no_credential(mocker: MockerFixture) -> None:
    mock_class = mocker.patch("tools.text_providers.ChatOllama")
    mock_class.return_value.ainvoke = mocker.AsyncMock(return_value=mocker.MagicMock(content=VALID_JSON))
    client = OllamaClient(make_spec("ollama", kind="ollama", requires_credential=False))

    result = await client.generate("Write about Gardening")

    assert result.ok
    assert result.text == VALID_JSON
    messages = mock_class.return_value.ainvoke.call_args.args[0]
    assert messages[1].content == "Write about Gardening"


@pytest.mark.asyncio
async def test_ollama_unreachable_is_network_failure(mocker: MockerFixture) -> None:
    mock_class = mocker.patch("tools.text_providers.ChatOllama")
    mock_class.return_value.ainvoke = mocker.AsyncMock(side_effect=ConnectionError("refused"))
    client = OllamaClient(make_spec("ollama", kind="ollama", requires_credential=False))

    result = await client.generate("prompt")

    assert result.error.reason == "network"


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

def test_build_text_clients_keeps_order() -> None:
    clients = build_text_clients(["huggingface", "groq"], TEXT_PROVIDERS)
    assert [c.name for c in clients] == ["huggingface", "groq"]
    assert isinstance(clients[0], HuggingFaceClient)
    assert isinstance(clients[1], OpenAIChatClient)


def test_build_text_clients_rejects_unknown_name() -> None:
    with pytest.raises(ConfigurationError):
        build_text_clients(["openai"], TEXT_PROVIDERS)


def test_build_text_clients_rejects_unknown_kind() -> None:
    with pytest.raises(ConfigurationError):
        build_text_clients(["weird"], {"weird": make_spec("weird", kind="smoke-signals")})
