"""Tests for the streamed editor stage and rollback."""

from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest

from article_engine.core.errors import NotFoundError, PersistenceError
from article_engine.core.schemas_articles import EditorRequest
from article_engine.services import editor_stream, job_tracking
from article_engine.services.editor_stream import (
    AI_EDIT_SUMMARY,
    PRE_EDIT_SUMMARY,
    ROLLBACK_SUMMARY,
    EditorStream,
    EmptyArticleError,
    rollback_edit,
)
from tests.fakes.fake_llm import FakeTokenStream, collect_events
from tests.fakes.fake_store import FakeStore, patch_store

ORIGINAL = "# Edge AI\n\nRead [the guide](/articles/guide) and [the study](https://example.com/study)."
EDITED = ["# Edge AI\n\n", "Read [the guide](/articles/guide) — then ", "act."]


@pytest.fixture
def store():
    store = FakeStore()
    with patch_store(store, editor_stream, job_tracking):
        with patch.object(editor_stream, "refresh_article_embedding", new=AsyncMock(return_value=[0.1])):
            yield store


def _editor(store, content=ORIGINAL):
    article = store.add_article(content=content)
    return EditorStream(EditorRequest(articleId=article["id"]), user_id="user-1"), article


class TestEditorStream:
    @pytest.mark.asyncio
    async def test_snapshot_taken_before_streaming(self, store):
        stream, article = _editor(store)

        with patch.object(editor_stream, "stream_chat", return_value=FakeTokenStream(EDITED)):
            await stream.start()
            assert [v["change_summary"] for v in store.versions] == [PRE_EDIT_SUMMARY]
            assert store.versions[0]["content"] == ORIGINAL
            events = [e async for e in stream.events()]

        assert events[0] == {"type": "edit_started", "articleId": article["id"], "snapshotId": store.versions[0]["id"]}
        assert events[-1]["type"] == "complete"

    @pytest.mark.asyncio
    async def test_em_dashes_removed_and_saved(self, store):
        stream, article = _editor(store)

        with patch.object(editor_stream, "stream_chat", return_value=FakeTokenStream(EDITED)):
            events = await collect_events(stream)

        content = store.articles[article["id"]]["content"]
        assert "—" not in content
        assert content == "# Edge AI\n\nRead [the guide](/articles/guide), then act."
        assert events[-1]["metadata"]["saved"] is True
        assert events[-1]["metadata"]["originalWordCount"] > 0
        assert [v["change_summary"] for v in store.versions] == [PRE_EDIT_SUMMARY, AI_EDIT_SUMMARY]

    @pytest.mark.asyncio
    async def test_lost_links_produce_warning(self, store):
        stream, _ = _editor(store)

        with patch.object(editor_stream, "stream_chat", return_value=FakeTokenStream(EDITED)):
            events = await collect_events(stream)

        warnings = [e for e in events if e["type"] == "warning"]
        assert len(warnings) == 1
        assert "https://example.com/study" in warnings[0]["message"]

    @pytest.mark.asyncio
    async def test_snapshot_failure_blocks_edit(self, store):
        stream, article = _editor(store)
        store.fail_version_insert = True

        with pytest.raises(PersistenceError):
            await stream.start()

        assert store.articles[article["id"]]["content"] == ORIGINAL

    @pytest.mark.asyncio
    async def test_empty_article_rejected(self, store):
        stream, _ = _editor(store, content="   ")

        with pytest.raises(EmptyArticleError):
            await stream.start()

    @pytest.mark.asyncio
    async def test_missing_article(self, store):
        stream = EditorStream(EditorRequest(articleId=uuid4()))

        with pytest.raises(NotFoundError):
            await stream.start()

    @pytest.mark.asyncio
    async def test_final_save_failure_keeps_original(self, store):
        stream, article = _editor(store)
        store.fail_article_update_when = lambda fields: "content" in fields

        with patch.object(editor_stream, "stream_chat", return_value=FakeTokenStream(EDITED)):
            events = await collect_events(stream)

        assert events[-1]["type"] == "complete"
        assert events[-1]["metadata"]["saved"] is False
        assert store.articles[article["id"]]["content"] == ORIGINAL


class TestRollback:
    @pytest.mark.asyncio
    async def test_rollback_restores_snapshot(self, store):
        stream, article = _editor(store)
        with patch.object(editor_stream, "stream_chat", return_value=FakeTokenStream(EDITED)):
            await collect_events(stream)

        restored = await rollback_edit(UUID(article["id"]))

        assert restored["content"] == ORIGINAL
        assert store.articles[article["id"]]["content"] == ORIGINAL
        assert store.versions[-1]["change_summary"] == ROLLBACK_SUMMARY

    @pytest.mark.asyncio
    async def test_rollback_without_snapshot(self, store):
        article = store.add_article(content="text")

        with pytest.raises(NotFoundError):
            await rollback_edit(UUID(article["id"]))
