"""Tests for the research graph, research responses and topic saving."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from article_engine.core.schemas_topics import (
    ResearchRequest,
    SaveTopicsRequest,
    Source,
    TopicCandidate,
)
from article_engine.core.similarity import SimilarMatch
from article_engine.graphs import research_graph
from article_engine.graphs.research_graph import run_research_graph, should_search, topic_count_for
from article_engine.services import topic_dedup, topic_research
from article_engine.services.topic_research import InvalidTopicSelectionError, research_topics, save_topics
from tests.fakes.fake_store import FakeStore, patch_store


def _candidates(n: int) -> list:
    return [TopicCandidate(title=f"Topic {i}", summary="s", relevance_score=0.7) for i in range(n)]


class TestTopicCount:
    def test_mode_defaults(self):
        assert topic_count_for(ResearchRequest(industry="ai")) == 12
        assert topic_count_for(ResearchRequest(industry="ai", mode="direct", maxTopics=5)) == 1
        assert topic_count_for(ResearchRequest(mode="prompt", promptInput="home networking")) == 10

    def test_explicit_max_topics(self):
        assert topic_count_for(ResearchRequest(industry="ai", maxTopics=4)) == 4


def test_prompt_mode_requires_input():
    with pytest.raises(ValueError):
        ResearchRequest(mode="prompt", promptInput="  ")


def test_discover_mode_requires_industry_or_keywords():
    with pytest.raises(ValueError):
        ResearchRequest(mode="discover")


def test_should_search():
    state = research_graph.ResearchState(
        mode="prompt", industry=None, keywords=[], article_type=None, topic_count=10, use_search=False
    )
    assert should_search(state) == "analyze"
    state.use_search = True
    assert should_search(state) == "search"


class TestResearchGraph:
    @pytest.mark.asyncio
    async def test_discover_runs_search_then_dedup(self):
        sources = [Source(url="https://news.example/a", title="AI agents news")]
        discover = AsyncMock(return_value=_candidates(14))
        embeddings = AsyncMock(return_value=[[float(i)] for i in range(12)])

        def _find(embedding, threshold, limit):
            if embedding[0] == 0.0:
                return [SimilarMatch(id="old", title="Saved", similarity=0.97)]
            return []

        with (
            patch.object(research_graph, "search_many", new=AsyncMock(return_value=sources)) as mock_search,
            patch.object(research_graph, "discover_topics", new=discover),
            patch.object(topic_dedup, "embed_texts_async", new=embeddings),
            patch.object(topic_dedup, "find_similar_topics", side_effect=_find),
        ):
            state = await run_research_graph(ResearchRequest(industry="ai", keywords=["agents"]))

        mock_search.assert_awaited_once()
        assert discover.await_args.kwargs["sources"] == sources
        assert discover.await_args.kwargs["keywords"][0] == "agents"
        assert len(state["topics"]) == 12
        assert len(state["kept"]) == 11
        assert state["duplicates"][0].similar_to == "Saved"

    @pytest.mark.asyncio
    async def test_prompt_mode_skips_search(self):
        with (
            patch.object(research_graph, "search_many", new=AsyncMock()) as mock_search,
            patch.object(research_graph, "discover_topics", new=AsyncMock(return_value=_candidates(2))),
            patch.object(topic_dedup, "embed_texts_async", new=AsyncMock(side_effect=RuntimeError("down"))),
        ):
            state = await run_research_graph(
                ResearchRequest(mode="prompt", promptInput="guides to home networking")
            )

        mock_search.assert_not_awaited()
        assert state["search_keywords"] == ["guides", "home", "networking"]
        assert len(state["kept"]) == 2


class TestResearchTopics:
    @pytest.mark.asyncio
    async def test_response_uses_temporary_ids(self):
        screened = topic_dedup.ScreenedTopic(
            topic=TopicCandidate(title="Edge AI", summary="s", angle="cost"),
            result=topic_dedup.classify_candidate(
                has_embedding=True, matches=[SimilarMatch(id="x", title="Near", similarity=0.87)]
            ),
        )
        graph_state = {"topics": [screened.topic], "kept": [screened], "duplicates": [], "search_keywords": ["edge"]}

        with (
            patch.object(topic_research, "get_or_create_industry", return_value="ind-1"),
            patch.object(topic_research, "run_research_graph", new=AsyncMock(return_value=graph_state)),
        ):
            response = await research_topics(ResearchRequest(industry="AI", keywords=["edge"]))

        topic = response.topics[0]
        assert topic["id"].startswith("temp-")
        assert topic["metadata"]["temporary"] is True
        assert topic["metadata"]["similarTopics"][0]["similarity"] == 0.87
        assert topic["metadata"]["industry"] == "ai"
        assert response.saved is False
        assert response.metadata.topics_discovered == 1


class TestSaveTopics:
    @pytest.fixture
    def store(self):
        store = FakeStore()
        with patch_store(store, topic_research):
            with patch.object(topic_research, "get_or_create_industry", return_value="ind-ai") as industry:
                store.industry_lookup = industry
                yield store

    def _unsaved(self, key: str) -> dict:
        return {
            "id": key,
            "title": f"Title {key}",
            "summary": "s",
            "metadata": {
                "industry": "ai",
                "temporary": True,
                "_topicData": {
                    "title": f"Title {key}",
                    "summary": "s",
                    "sources": [],
                    "relevance_score": 0.8,
                    "embedding": [0.1],
                    "metadata": {"angle": "cost", "industry": "ai"},
                },
            },
        }

    @pytest.mark.asyncio
    async def test_saves_selected_topics(self, store):
        topics = [self._unsaved("temp-1-0"), self._unsaved("temp-1-1")]

        saved = await save_topics(SaveTopicsRequest(topicIds=["temp-1-1"], topics=topics))

        assert len(saved) == 1
        assert saved[0]["title"] == "Title temp-1-1"
        assert saved[0]["ref"] == {"kind": "saved", "id": saved[0]["id"]}
        row = store.topics[saved[0]["id"]]
        assert row["industry_id"] == "ind-ai"
        assert row["embedding"] == [0.1]
        assert "temporary" not in row["metadata"]
        store.industry_lookup.assert_called_once()

    @pytest.mark.asyncio
    async def test_already_saved_ids_are_skipped(self, store):
        saved_id = "6f1c2a5e-8f7b-4c1e-9b3a-2d5e6f7a8b9c"

        saved = await save_topics(SaveTopicsRequest(topicIds=[saved_id], topics=[{"id": saved_id}]))

        assert saved == []
        assert store.topics == {}

    @pytest.mark.asyncio
    async def test_missing_topic_payload(self, store):
        with pytest.raises(InvalidTopicSelectionError):
            await save_topics(SaveTopicsRequest(topicIds=["temp-9-9"], topics=[self._unsaved("temp-1-0")]))

    @pytest.mark.asyncio
    async def test_malformed_id(self, store):
        with pytest.raises(InvalidTopicSelectionError):
            await save_topics(SaveTopicsRequest(topicIds=["not-a-uuid"], topics=[{"id": "not-a-uuid"}]))
