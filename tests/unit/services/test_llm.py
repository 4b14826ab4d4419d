from types import SimpleNamespace
from unittest.mock import AsyncMock
from unittest.mock import patch

import httpx
import pytest
from openai import APIConnectionError
from openai import APIStatusError
from openai import APITimeoutError

from autodocs.core.config import settings
from autodocs.core.exceptions import ConfigurationError
from autodocs.core.exceptions import EmptyResponseError
from autodocs.core.exceptions import GenerationTimeoutError
from autodocs.core.exceptions import ServiceError
from autodocs.core.exceptions import TransportError
from autodocs.services.llm import DOCUMENTATION_WRITER_INSTRUCTION
from autodocs.services.llm import call_llm
from autodocs.services.llm import get_client
from autodocs.services.llm import parse_completion

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client_returning(value=None, side_effect=None):
    client = AsyncMock()
    client.chat.completions.create = AsyncMock(return_value=value, side_effect=side_effect)
    return client


@pytest.mark.asyncio
async def test_call_llm_success(api_key):
    """
    A successful completion returns the stripped content and sends the
    documentation-writer system turn followed by the user prompt.
    """
    client = _client_returning(_completion("  # PRD\n\nBody  "))

    content = await call_llm("Write a PRD", client=client)

    assert content == "# PRD\n\nBody"
    client.chat.completions.create.assert_awaited_once()
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == settings.model_id
    assert kwargs["messages"] == [
        {"role": "system", "content": DOCUMENTATION_WRITER_INSTRUCTION},
        {"role": "user", "content": "Write a PRD"},
    ]
    assert kwargs["max_tokens"] == settings.llm_max_tokens
    assert kwargs["temperature"] == settings.llm_temperature


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_call_llm_empty_content_is_a_failure(api_key, content):
    client = _client_returning(_completion(content))
    with pytest.raises(EmptyResponseError):
        await call_llm("prompt", client=client)


@pytest.mark.asyncio
async def test_call_llm_no_choices_is_empty(api_key):
    client = _client_returning(SimpleNamespace(choices=[]))
    with pytest.raises(EmptyResponseError):
        await call_llm("prompt", client=client)


@pytest.mark.asyncio
async def test_call_llm_malformed_response_is_service_error(api_key):
    client = _client_returning(SimpleNamespace(unexpected="shape"))
    with pytest.raises(ServiceError) as exc_info:
        await call_llm("prompt", client=client)
    assert "Invalid response structure" in str(exc_info.value)


@pytest.mark.asyncio
async def test_call_llm_status_error_carries_upstream_status(api_key):
    response = httpx.Response(429, request=_REQUEST)
    error = APIStatusError("Rate limit reached", response=response, body=None)
    client = _client_returning(side_effect=error)

    with pytest.raises(ServiceError) as exc_info:
        await call_llm("prompt", client=client)

    assert exc_info.value.status_code == 429
    assert "Rate limit reached" in str(exc_info.value)
    assert exc_info.value.__cause__ is error
    # No retries at this layer
    client.chat.completions.create.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        APIConnectionError(request=_REQUEST),
        APITimeoutError(request=_REQUEST),
    ],
)
async def test_call_llm_connection_errors_are_transport_errors(api_key, error):
    client = _client_returning(side_effect=error)
    with pytest.raises(TransportError):
        await call_llm("prompt", client=client)
    client.chat.completions.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_call_llm_client_timeout_is_a_generation_timeout(api_key):
    client = _client_returning(side_effect=APITimeoutError(request=_REQUEST))
    with pytest.raises(GenerationTimeoutError):
        await call_llm("prompt", client=client)


def test_parse_completion_accepts_dicts():
    assert parse_completion({"choices": [{"message": {"content": "hello"}}]}) == "hello"


def test_get_client_requires_credential(no_api_key):
    with pytest.raises(ConfigurationError):
        get_client()


def test_get_client_is_cached_and_never_retries(api_key):
    client = get_client()
    assert client is get_client()
    assert client.max_retries == 0


@pytest.mark.asyncio
async def test_call_llm_without_credential_makes_no_call(no_api_key):
    with patch("autodocs.services.llm.AsyncOpenAI") as client_cls:
        with pytest.raises(ConfigurationError):
            await call_llm("prompt")
    client_cls.assert_not_called()
