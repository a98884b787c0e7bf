"""Chat completions as an async token stream.

Every generation stage consumes ``stream_chat``: it yields text chunks in the
order the model produces them and ends when the model finishes. Provider
failures are raised out of the iterator as ``UpstreamError``; a stalled stream
raises ``UpstreamTimeoutError`` once no token arrives within the token timeout.
"""

import asyncio
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Any

from openai import AsyncOpenAI

from article_engine.core.config import get_settings
from article_engine.core.errors import UpstreamError, UpstreamTimeoutError
from article_engine.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def _get_async_client() -> AsyncOpenAI:
    """Get async OpenAI client instance (cached)."""
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


async def stream_chat(
    messages: list[dict[str, str]],
    *,
    model: str,
    temperature: float,
    token_timeout: float | None = None,
) -> AsyncIterator[str]:
    """
    Stream a chat completion token by token.

    Args:
        messages: OpenAI chat messages
        model: Model name
        temperature: Sampling temperature
        token_timeout: Max seconds between tokens (defaults to STREAM_TOKEN_TIMEOUT_S)

    Yields:
        Non-empty text chunks in generation order

    Raises:
        UpstreamError: If the provider call fails
        UpstreamTimeoutError: If the stream stalls
    """
    settings = get_settings()
    timeout = token_timeout if token_timeout is not None else settings.STREAM_TOKEN_TIMEOUT_S
    client = _get_async_client()

    try:
        stream = await asyncio.wait_for(
            client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                stream=True,
            ),
            timeout,
        )
    except asyncio.TimeoutError as e:
        raise UpstreamTimeoutError(f"Model {model} did not start streaming within {timeout}s") from e
    except Exception as e:
        logger.error(f"Failed to open stream: {e}", extra={"model": model})
        raise UpstreamError(f"Model request failed: {e}") from e

    # Closed on every exit, including aclose() when the consumer disconnects
    iterator = stream.__aiter__()
    try:
        while True:
            try:
                chunk = await asyncio.wait_for(iterator.__anext__(), timeout)
            except StopAsyncIteration:
                break
            except asyncio.TimeoutError as e:
                logger.error(f"Token stream stalled for {timeout}s", extra={"model": model})
                raise UpstreamTimeoutError(f"No token from {model} within {timeout}s") from e
            except Exception as e:
                logger.error(f"Token stream failed: {e}", extra={"model": model})
                raise UpstreamError(f"Model stream failed: {e}") from e

            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
    finally:
        await stream.close()


async def complete_chat(
    messages: list[dict[str, str]],
    *,
    model: str,
    temperature: float,
    json_mode: bool = False,
) -> str:
    """
    Run a non-streamed chat completion and return the message text.

    Raises:
        UpstreamError: If the provider call fails
    """
    client = _get_async_client()
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = await client.chat.completions.create(**kwargs)
    except Exception as e:
        logger.error(f"Chat completion failed: {e}", extra={"model": model})
        raise UpstreamError(f"Model request failed: {e}") from e

    return response.choices[0].message.content or ""
