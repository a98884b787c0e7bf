"""Tests for Tavily web search."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from article_engine.services import web_search
from article_engine.services.web_search import search, search_many, search_safe


def _settings(api_key="tvly-test"):
    return MagicMock(TAVILY_API_KEY=api_key, SEARCH_MAX_RESULTS=6, SEARCH_TIMEOUT_S=7.0)


def _tavily(response=None, error=None) -> MagicMock:
    client = MagicMock()
    client.search = AsyncMock(return_value=response, side_effect=error)
    return client


class TestSearch:
    @pytest.mark.asyncio
    async def test_parses_results(self):
        client = _tavily(
            {
                "results": [
                    {"url": "https://news.example/a", "title": "A", "content": "snippet", "published_date": "2026-10-01"},
                    {"title": "no url"},
                ]
            }
        )

        with patch.object(web_search, "get_settings", return_value=_settings()):
            sources = await search("edge ai", client)

        assert len(sources) == 1
        assert sources[0].domain == "news.example"
        assert sources[0].snippet == "snippet"
        client.search.assert_awaited_once()
        assert client.search.await_args.args == ("edge ai",)
        assert client.search.await_args.kwargs["max_results"] == 6
        assert client.search.await_args.kwargs["search_depth"] == "basic"

    @pytest.mark.asyncio
    async def test_creates_client_from_settings(self):
        client = _tavily({"results": []})

        with (
            patch.object(web_search, "get_settings", return_value=_settings()),
            patch.object(web_search, "AsyncTavilyClient", return_value=client) as factory,
        ):
            assert await search("edge ai") == []

        factory.assert_called_once_with(api_key="tvly-test")

    @pytest.mark.asyncio
    async def test_missing_key_raises(self):
        with patch.object(web_search, "get_settings", return_value=_settings(api_key=None)):
            with pytest.raises(ValueError):
                await search("edge ai")

    @pytest.mark.asyncio
    async def test_search_safe_swallows_request_errors(self):
        client = _tavily(error=RuntimeError("usage limit exceeded"))

        with patch.object(web_search, "get_settings", return_value=_settings()):
            assert await search_safe("edge ai", client) == []


@pytest.mark.asyncio
async def test_search_many_without_key_is_empty():
    with patch.object(web_search, "get_settings", return_value=_settings(api_key=None)):
        assert await search_many(["a", "b"]) == []


@pytest.mark.asyncio
async def test_search_many_merges_and_dedups_urls():
    client = MagicMock()
    client.search = AsyncMock(
        side_effect=[
            {"results": [{"url": "https://a.example/1"}, {"url": "https://a.example/2"}]},
            {"results": [{"url": "https://a.example/2"}, {"url": "https://b.example/3"}]},
        ]
    )

    with (
        patch.object(web_search, "get_settings", return_value=_settings()),
        patch.object(web_search, "AsyncTavilyClient", return_value=client),
    ):
        sources = await search_many(["q1", "q2"])

    assert [s.url for s in sources] == ["https://a.example/1", "https://a.example/2", "https://b.example/3"]
