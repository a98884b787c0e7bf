"""Tests for the chat completion token stream."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from article_engine.core import streaming_llm
from article_engine.core.errors import UpstreamError, UpstreamTimeoutError
from article_engine.core.streaming_llm import stream_chat


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _ProviderStream:
    """Stand-in for the provider's async chunk stream."""

    def __init__(self, chunks, stall_after=None, error=None):
        self.chunks = list(chunks)
        self.stall_after = stall_after
        self.error = error
        self.sent = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.stall_after is not None and self.sent >= self.stall_after:
            await asyncio.sleep(10)
        if self.error is not None and self.sent >= len(self.chunks):
            raise self.error
        if self.sent >= len(self.chunks):
            raise StopAsyncIteration
        chunk = self.chunks[self.sent]
        self.sent += 1
        return chunk

    async def close(self):
        self.closed = True


def _client_for(provider_stream):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=provider_stream)
    return client


async def _drain(**kwargs):
    return [t async for t in stream_chat([{"role": "user", "content": "hi"}], model="m", temperature=0, **kwargs)]


@pytest.mark.asyncio
async def test_yields_tokens_in_order_and_closes():
    provider = _ProviderStream([_chunk("Hello"), _chunk(None), SimpleNamespace(choices=[]), _chunk(" world")])

    with patch.object(streaming_llm, "_get_async_client", return_value=_client_for(provider)):
        tokens = await _drain()

    assert tokens == ["Hello", " world"]
    assert provider.closed


@pytest.mark.asyncio
async def test_stall_raises_timeout_and_closes():
    provider = _ProviderStream([_chunk("Hello")], stall_after=1)

    with patch.object(streaming_llm, "_get_async_client", return_value=_client_for(provider)):
        with pytest.raises(UpstreamTimeoutError):
            await _drain(token_timeout=0.01)

    assert provider.closed


@pytest.mark.asyncio
async def test_provider_error_is_wrapped_and_closes():
    provider = _ProviderStream([_chunk("Hello")], error=RuntimeError("connection reset"))

    with patch.object(streaming_llm, "_get_async_client", return_value=_client_for(provider)):
        with pytest.raises(UpstreamError, match="connection reset"):
            await _drain()

    assert provider.closed


@pytest.mark.asyncio
async def test_consumer_closing_early_closes_provider_stream():
    provider = _ProviderStream([_chunk("a"), _chunk("b"), _chunk("c")])

    with patch.object(streaming_llm, "_get_async_client", return_value=_client_for(provider)):
        tokens = stream_chat([{"role": "user", "content": "hi"}], model="m", temperature=0)
        assert await tokens.__anext__() == "a"
        await tokens.aclose()

    assert provider.closed


@pytest.mark.asyncio
async def test_open_failure_is_upstream_error():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=RuntimeError("401"))

    with patch.object(streaming_llm, "_get_async_client", return_value=client):
        with pytest.raises(UpstreamError, match="401"):
            await _drain()


def test_client_is_cached():
    streaming_llm._get_async_client.cache_clear()
    try:
        assert streaming_llm._get_async_client() is streaming_llm._get_async_client()
    finally:
        streaming_llm._get_async_client.cache_clear()
