"""Tests for text-generation clients."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from news_digest.adapters.llm import ClaudeClient, OpenAIClient, create_text_generator
from news_digest.config import Settings
from news_digest.core import CompletionRequest, ConfigurationError, GenerationError


@pytest.fixture
def mock_settings() -> Settings:
    """Create mock settings."""
    settings = Settings(anthropic_api_key="test-key", openai_api_key="test-openai-key")
    settings.llm.max_retries = 3
    settings.llm.initial_retry_delay = 0.01  # Faster for tests
    return settings


@pytest.fixture
def completion_request() -> CompletionRequest:
    return CompletionRequest(system_instruction="You are a curator.", user_content="Summarize this.")


def make_response(status_code: int, data=None, headers=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = "error body"
    response.json.return_value = data
    return response


def mock_async_client(mock_client_class: MagicMock, responses: list) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.side_effect = responses
    mock_client_class.return_value = mock_client
    return mock_client


@pytest.mark.asyncio
async def test_complete_success(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test successful completion."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(mock_client_class, [
            make_response(200, {"content": [{"type": "text", "text": "Digest text"}]}),
        ])

        result = await client.complete(completion_request)

    assert result.text == "Digest text"
    assert result.provider == "claude"
    assert result.model == mock_settings.llm.claude_model

    kwargs = mock_client.post.call_args.kwargs
    assert kwargs["headers"]["x-api-key"] == "test-key"
    assert kwargs["json"]["system"] == "You are a curator."
    assert kwargs["json"]["messages"] == [{"role": "user", "content": "Summarize this."}]


@pytest.mark.asyncio
async def test_complete_retry_on_429(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test retry logic on 429 error."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(mock_client_class, [
            make_response(429, headers={"retry-after": "0.01"}),
            make_response(200, {"content": [{"type": "text", "text": "After retry"}]}),
        ])

        result = await client.complete(completion_request)

    assert result.text == "After retry"
    assert mock_client.post.call_count == 2


@pytest.mark.asyncio
async def test_complete_retry_on_server_error(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test 5xx responses are retried until attempts run out."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(mock_client_class, [make_response(503)] * 3)

        with pytest.raises(GenerationError, match="failed after 3 attempts"):
            await client.complete(completion_request)

    assert mock_client.post.call_count == 3


@pytest.mark.asyncio
async def test_complete_client_error_not_retried(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test 4xx responses fail immediately."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(mock_client_class, [make_response(400)])

        with pytest.raises(GenerationError, match="API error 400"):
            await client.complete(completion_request)

    assert mock_client.post.call_count == 1


@pytest.mark.asyncio
async def test_complete_network_error(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test network errors are retried, then reported as GenerationError."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(
            mock_client_class, [httpx.ConnectError("unreachable")] * 3
        )

        with pytest.raises(GenerationError, match="ConnectError"):
            await client.complete(completion_request)

    assert mock_client.post.call_count == 3


@pytest.mark.asyncio
async def test_complete_empty_response(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test empty text is an error."""
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_async_client(mock_client_class, [make_response(200, {"content": []})])

        with pytest.raises(GenerationError, match="empty response"):
            await client.complete(completion_request)


@pytest.mark.asyncio
async def test_complete_unexpected_shape(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    client = ClaudeClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_async_client(mock_client_class, [make_response(200, {"unexpected": True})])

        with pytest.raises(GenerationError, match="unexpected response shape"):
            await client.complete(completion_request)


@pytest.mark.asyncio
async def test_complete_times_out(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test the overall request deadline."""
    mock_settings.llm.request_timeout = 0.01
    client = ClaudeClient(mock_settings)

    async def slow_call(payload):
        await asyncio.sleep(1)

    with patch.object(client, "_call_api", side_effect=slow_call):
        with pytest.raises(GenerationError, match="timed out"):
            await client.complete(completion_request)


@pytest.mark.asyncio
async def test_openai_complete(mock_settings: Settings, completion_request: CompletionRequest) -> None:
    """Test the chat completions client."""
    client = OpenAIClient(mock_settings)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = mock_async_client(mock_client_class, [
            make_response(200, {"choices": [{"message": {"content": "OpenAI text"}}]}),
        ])

        result = await client.complete(completion_request)

    assert result.text == "OpenAI text"
    assert result.provider == "openai"
    assert mock_client.post.call_args.args[0] == "https://api.openai.com/v1/chat/completions"
    assert mock_client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-openai-key"


def test_missing_api_key() -> None:
    """Test clients refuse to start without a key."""
    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        ClaudeClient(Settings())
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        OpenAIClient(Settings())


def test_create_text_generator(mock_settings: Settings) -> None:
    """Test provider selection."""
    assert isinstance(create_text_generator(mock_settings), ClaudeClient)

    mock_settings.llm.provider = "OpenAI"
    assert isinstance(create_text_generator(mock_settings), OpenAIClient)

    mock_settings.llm.provider = "gemini"
    with pytest.raises(ConfigurationError, match="Unknown LLM provider"):
        create_text_generator(mock_settings)
