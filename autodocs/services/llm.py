import logging
from functools import lru_cache
from typing import Any
from uuid import uuid4

import httpx
import pydantic
from openai import APIConnectionError
from openai import APIStatusError
from openai import APITimeoutError
from openai import AsyncOpenAI
from openai import OpenAIError
from pydantic import BaseModel
from pydantic import ConfigDict

from autodocs.core.config import settings
from autodocs.core.exceptions import ConfigurationError
from autodocs.core.exceptions import EmptyResponseError
from autodocs.core.exceptions import GenerationTimeoutError
from autodocs.core.exceptions import ServiceError
from autodocs.core.exceptions import TransportError

# Configure module logger
logger = logging.getLogger(__name__)

DOCUMENTATION_WRITER_INSTRUCTION = (
    "You are an expert technical writer who produces clear, well-structured software project "
    "documentation. Answer in GitHub-flavoured Markdown only, starting directly with the document "
    "title. Be specific to the project you are given, prefer concrete details over generic advice, "
    "and do not add commentary before or after the document."
)


# ---------------------------------------------------------------
# Upstream response shape, validated at the boundary
# ---------------------------------------------------------------
class _CompletionMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    content: str | None = None


class _CompletionChoice(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    message: _CompletionMessage


class CompletionPayload(BaseModel):
    """The only part of a chat completion the service relies on."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    choices: list[_CompletionChoice]

    def first_content(self) -> str:
        if not self.choices:
            return ""
        return (self.choices[0].message.content or "").strip()


# ---------------------------------------------------------------
# OpenAI client, created once the credential is known
# ---------------------------------------------------------------
def ensure_credential() -> str:
    """Return the configured API credential or raise ``ConfigurationError``."""
    if not settings.openai_api_key:
        logger.critical("OPENAI_API_KEY is not configured; no documentation can be generated.")
        raise ConfigurationError("OpenAI API key is not configured")
    return settings.openai_api_key


@lru_cache(maxsize=1)
def get_client() -> AsyncOpenAI:
    api_key = ensure_credential()
    timeout_config = httpx.Timeout(
        settings.LLM_CONNECT_TIMEOUT,
        read=settings.LLM_READ_TIMEOUT,
    )
    logger.info("Creating OpenAI client for model %s", settings.model_id)
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=timeout_config,
        max_retries=0,  # one outbound call per document
    )


def parse_completion(rsp: Any) -> str:
    """Validate a completion response and return its text content.

    Raises:
        ServiceError: If the response does not have the expected shape.
        EmptyResponseError: If the response carries no usable content.
    """
    try:
        payload = CompletionPayload.model_validate(rsp)
    except pydantic.ValidationError as e:
        raise ServiceError(f"Invalid response structure from LLM API: {e.error_count()} validation error(s)") from e

    content = payload.first_content()
    if not content:
        raise EmptyResponseError("The model returned an empty response")
    return content


async def call_llm(prompt: str, *, client: AsyncOpenAI | None = None) -> str:
    """Send one documentation prompt and return the generated Markdown.

    Exactly one outbound request is made; nothing is retried here.

    Raises:
        ConfigurationError: If no credential is configured.
        ServiceError: If the API rejected or failed the call.
        TransportError: If the API could not be reached.
        GenerationTimeoutError: If the client gave up waiting for the API.
        EmptyResponseError: If the call succeeded without content.
    """
    request_id = str(uuid4())
    client = client or get_client()
    logger.info("[%s] Making LLM API call with model: %s", request_id, settings.model_id)

    try:
        rsp = await client.chat.completions.create(
            model=settings.model_id,
            messages=[
                {"role": "system", "content": DOCUMENTATION_WRITER_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    except APIStatusError as e:
        logger.error("[%s] OpenAI API error (status %s): %s", request_id, e.status_code, str(e))
        raise ServiceError(f"OpenAI API error: {e.message}", status_code=e.status_code) from e
    except APITimeoutError as e:
        logger.error("[%s] OpenAI API request timed out: %s", request_id, str(e))
        raise GenerationTimeoutError("timed out") from e
    except APIConnectionError as e:
        logger.error("[%s] Could not reach the OpenAI API: %s", request_id, str(e))
        raise TransportError(f"Connection error: {str(e)}") from e
    except OpenAIError as e:
        logger.error("[%s] OpenAI client error: %s", request_id, str(e), exc_info=True)
        raise ServiceError(f"OpenAI API error: {str(e)}") from e
    except httpx.HTTPError as e:
        logger.error("[%s] HTTP transport error: %s", request_id, str(e))
        raise TransportError(f"Transport error: {str(e)}") from e

    logger.debug("[%s] Raw LLM response structure: %s", request_id, str(rsp)[:500])
    content = parse_completion(rsp)
    logger.debug("[%s] LLM response received, length: %d chars", request_id, len(content))
    return content
