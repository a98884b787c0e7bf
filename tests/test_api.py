"""Tests for the HTTP API.

Covers auth, request validation, stream setup errors, SSE bodies and the
non-streaming writer response via FastAPI TestClient with an in-memory store.
"""

import json
from typing import List
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from article_engine.api import editor as editor_api
from article_engine.api import jobs as jobs_api
from article_engine.api import outline as outline_api
from article_engine.api import research as research_api
from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.schemas_topics import BrainstormIdea, ResearchMetadata, ResearchResponse
from article_engine.main import app
from article_engine.services import brainstorm as brainstorm_service
from article_engine.services import editor_stream, job_tracking, outline_stream, topic_research, writer_stream
from tests.fakes.fake_llm import FakeTokenStream, scripted_responses
from tests.fakes.fake_store import FakeStore, patch_store

STRUCTURE = {
    "title": "Edge AI in Retail",
    "hook": "Checkout lines are vanishing.",
    "sections": [{"heading": "Why now", "keyPoints": ["cheap chips"], "wordTarget": 200}],
    "conclusion": {"summary": "Start small", "callToAction": "Pilot one store"},
}


def parse_sse_events(text: str) -> List[dict]:
    """Parse SSE response body into a list of event dicts."""
    events = []
    for line in text.strip().split("\n"):
        line = line.strip()
        if line.startswith("data: "):
            try:
                events.append(json.loads(line[6:]))
            except json.JSONDecodeError:
                pass
    return events


@pytest.fixture
def store():
    store = FakeStore()
    with patch_store(
        store,
        outline_api,
        jobs_api,
        research_api,
        outline_stream,
        writer_stream,
        editor_stream,
        job_tracking,
        brainstorm_service,
        topic_research,
    ):
        with (
            patch.object(writer_stream, "refresh_article_embedding", new=AsyncMock()),
            patch.object(editor_stream, "refresh_article_embedding", new=AsyncMock()),
        ):
            yield store


@pytest.fixture
def client(store):
    app.dependency_overrides[require_auth] = lambda: AuthContext(user_id="user-1", token="test-token")
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def test_health():
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_requires_auth(store):
    response = TestClient(app, raise_server_exceptions=False).post(
        "/v1/agents/outline", json={"topicId": str(uuid4())}
    )

    assert response.status_code == 401


class TestValidation:
    def test_malformed_body_is_400(self, client):
        response = client.put("/v1/agents/outline", json={"articleType": "blog"})

        assert response.status_code == 400
        assert "topicId" in response.json()["detail"]

    def test_unknown_article_type_is_400(self, client):
        response = client.put("/v1/agents/outline", json={"topicId": str(uuid4()), "articleType": "poem"})

        assert response.status_code == 400

    def test_research_prompt_mode_without_input(self, client):
        response = client.post("/v1/agents/research", json={"mode": "prompt"})

        assert response.status_code == 400


class TestResearchEndpoints:
    def _response(self):
        return ResearchResponse(
            topics=[{"id": "temp-1-0", "title": "Edge AI in Retail"}],
            metadata=ResearchMetadata(industry="retail", mode="discover"),
        )

    def test_research_records_job(self, client, store):
        with patch.object(research_api, "research_topics", new=AsyncMock(return_value=self._response())):
            response = client.post("/v1/agents/research", json={"industry": "retail"})

        assert response.status_code == 200
        job_id = response.json()["jobId"]
        assert store.jobs[job_id]["status"] == "completed"
        assert store.jobs[job_id]["output"]["topics"] == 1

    def test_job_store_outage_does_not_fail_research(self, client, store):
        store.fail_job_store = True

        with patch.object(research_api, "research_topics", new=AsyncMock(return_value=self._response())):
            response = client.post("/v1/agents/research", json={"industry": "retail"})

        assert response.status_code == 200
        assert response.json()["jobId"] is None
        assert response.json()["topics"][0]["title"] == "Edge AI in Retail"

    def test_research_failure_is_500_and_fails_job(self, client, store):
        failing = AsyncMock(side_effect=RuntimeError("search down"))

        with patch.object(research_api, "research_topics", new=failing):
            response = client.post("/v1/agents/research", json={"industry": "retail"})

        assert response.status_code == 500
        assert "search down" in response.json()["detail"]
        assert [job["status"] for job in store.jobs.values()] == ["failed"]


class TestOutlineEndpoints:
    def test_stream_unknown_topic_is_404(self, client):
        response = client.put("/v1/agents/outline", json={"topicId": str(uuid4())})

        assert response.status_code == 404
        assert "Topic not found" in response.json()["detail"]

    def test_stream_events(self, client, store):
        topic = store.add_topic()
        tokens = [json.dumps(STRUCTURE)]

        with patch.object(outline_stream, "stream_chat", return_value=FakeTokenStream(tokens)):
            response = client.put("/v1/agents/outline", json={"topicId": topic["id"]})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse_events(response.text)
        assert events[0]["type"] == "outline_created"
        assert events[-1]["type"] == "complete"
        assert events[-1]["outline"]["id"] == events[0]["outlineId"]

    def test_post_save_failure_is_200_with_saved_false(self, client, store):
        topic = store.add_topic()
        store.fail_outline_update_when = lambda fields: not fields["structure"].get("metadata", {}).get("streaming")

        with patch.object(outline_stream, "stream_chat", return_value=FakeTokenStream([json.dumps(STRUCTURE)])):
            response = client.post("/v1/agents/outline", json={"topicId": topic["id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is False
        assert "database unavailable" in body["error"]
        assert body["warnings"]
        assert body["outline"]["structure"]["title"] == "Edge AI in Retail"

    def test_get_outline(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)

        response = client.get(f"/v1/agents/outline/{outline['id']}")

        assert response.status_code == 200
        assert response.json()["outline"]["structure"]["title"] == "Edge AI in Retail"

    def test_get_missing_outline(self, client):
        assert client.get(f"/v1/agents/outline/{uuid4()}").status_code == 404

    def test_patch_requires_a_change(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)

        response = client.patch("/v1/agents/outline", json={"outlineId": outline["id"]})

        assert response.status_code == 400

    def test_approve(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE, approved=False)

        response = client.patch("/v1/agents/outline", json={"outlineId": outline["id"], "approved": True})

        assert response.status_code == 200
        assert store.outlines[outline["id"]]["approved"] is True

    def test_approved_structure_is_locked(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)
        store.outlines[outline["id"]]["approved"] = True

        response = client.patch(
            "/v1/agents/outline", json={"outlineId": outline["id"], "structure": {"title": "Changed"}}
        )

        assert response.status_code == 400
        assert store.outlines[outline["id"]]["structure"]["title"] == "Edge AI in Retail"


class TestSectionEditEndpoints:
    def _rewrite(self, payload: dict):
        return patch(
            "article_engine.chains.edit_outline_section.complete_chat",
            new=AsyncMock(return_value=json.dumps(payload)),
        )

    def test_missing_outline_is_404(self, client):
        response = client.post(
            "/v1/agents/outline/edit-section",
            json={"outlineId": str(uuid4()), "sectionIndex": 0, "instruction": "shorter"},
        )

        assert response.status_code == 404

    def test_rewrites_and_saves_section(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE, approved=False)

        with self._rewrite({"heading": "Why 2026", "keyPoints": ["chips are cheap"], "wordTarget": 50}):
            response = client.post(
                "/v1/agents/outline/edit-section",
                json={"outlineId": outline["id"], "sectionIndex": 0, "instruction": "update the year"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["updatedSection"]["heading"] == "Why 2026"
        assert body["updatedSection"]["wordTarget"] == 200
        saved = store.outlines[outline["id"]]["structure"]
        assert saved["sections"][0]["keyPoints"] == ["chips are cheap"]
        assert saved["title"] == "Edge AI in Retail"

    def test_section_index_out_of_range_is_400(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE, approved=False)

        response = client.post(
            "/v1/agents/outline/edit-section",
            json={"outlineId": outline["id"], "sectionIndex": 3, "instruction": "shorter"},
        )

        assert response.status_code == 400
        assert "out of range" in response.json()["detail"]

    def test_empty_instruction_is_400(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE, approved=False)

        response = client.post(
            "/v1/agents/outline/edit-section",
            json={"outlineId": outline["id"], "sectionIndex": 0, "instruction": ""},
        )

        assert response.status_code == 400

    def test_approved_outline_is_400(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)
        store.outlines[outline["id"]]["approved"] = True

        response = client.post(
            "/v1/agents/outline/edit-section",
            json={"outlineId": outline["id"], "sectionIndex": 0, "instruction": "shorter"},
        )

        assert response.status_code == 400
        assert store.outlines[outline["id"]]["structure"]["sections"][0]["heading"] == "Why now"


class TestBrainstormEndpoints:
    def _ideas(self):
        return AsyncMock(return_value=[BrainstormIdea(title="Edge AI", seo_value=8, uniqueness_score=7)])

    def test_requires_industry_or_keywords(self, client):
        assert client.post("/v1/agents/brainstorm", json={"count": 3}).status_code == 400

    def test_brainstorm_saves_topics(self, client, store):
        with patch.object(brainstorm_service, "brainstorm_ideas", new=self._ideas()):
            response = client.post("/v1/agents/brainstorm", json={"industry": "ai"})

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is True
        assert body["metadata"]["method"] == "brainstorm"
        assert body["topics"][0]["id"] in store.topics
        assert [job["status"] for job in store.jobs.values()] == ["completed"]

    def test_save_failure_is_200_with_temporary_ids(self, client, store):
        store.fail_topic_insert = True

        with patch.object(brainstorm_service, "brainstorm_ideas", new=self._ideas()):
            response = client.post("/v1/agents/brainstorm", json={"keywords": ["edge ai"]})

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is False
        assert body["topics"][0]["id"].startswith("temp-")

    def test_model_failure_is_500(self, client, store):
        failing = AsyncMock(side_effect=RuntimeError("model overloaded"))

        with patch.object(brainstorm_service, "brainstorm_ideas", new=failing):
            response = client.post("/v1/agents/brainstorm", json={"industry": "ai"})

        assert response.status_code == 500
        assert "model overloaded" in response.json()["detail"]
        assert [job["status"] for job in store.jobs.values()] == ["failed"]

    def test_options(self, client):
        response = client.get("/v1/agents/brainstorm")

        assert response.status_code == 200
        assert response.json()["options"]["countRange"] == {"min": 1, "max": 10, "default": 5}


class TestWriterEndpoints:
    def _approved_outline(self, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)
        store.outlines[outline["id"]]["approved"] = True
        return outline

    def _script(self):
        return scripted_responses(["Stores are changing."], ["## Why now\n\n", "Chips got cheap."], ["## Conclusion\n\nGo."])

    def test_unapproved_outline_is_400(self, client, store):
        outline = store.add_outline(store.add_topic(), STRUCTURE)

        response = client.post("/v1/agents/writer", json={"outlineId": outline["id"]})

        assert response.status_code == 400
        assert "approved" in response.json()["detail"]

    def test_post_returns_article(self, client, store):
        outline = self._approved_outline(store)

        with patch.object(writer_stream, "stream_chat", side_effect=self._script()):
            response = client.post("/v1/agents/writer", json={"outlineId": outline["id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is True
        assert body["article"]["content"].endswith("## Conclusion\n\nGo.")

    def test_save_failure_is_200_with_saved_false(self, client, store):
        outline = self._approved_outline(store)
        store.fail_article_update_when = lambda fields: "excerpt" in fields

        with patch.object(writer_stream, "stream_chat", side_effect=self._script()):
            response = client.post("/v1/agents/writer", json={"outlineId": outline["id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is False
        assert "database unavailable" in body["error"]
        assert body["warnings"]
        assert "Chips got cheap." in body["article"]["content"]

    def test_generation_failure_is_500(self, client, store):
        outline = self._approved_outline(store)
        failing = FakeTokenStream(["Stores"], fail_after=1)

        with patch.object(writer_stream, "stream_chat", return_value=failing):
            response = client.post("/v1/agents/writer", json={"outlineId": outline["id"]})

        assert response.status_code == 500
        assert "Writer generation failed" in response.json()["detail"]

    def test_stream_has_single_terminal_event(self, client, store):
        outline = self._approved_outline(store)

        with patch.object(writer_stream, "stream_chat", side_effect=self._script()):
            response = client.put("/v1/agents/writer", json={"outlineId": outline["id"]})

        types = [e["type"] for e in parse_sse_events(response.text)]
        assert types[0] == "article_created"
        assert types[-1] == "complete"
        assert types.count("complete") == 1


class TestEditorEndpoints:
    def test_snapshot_failure_is_500(self, client, store):
        article = store.add_article(content="Some text")
        store.fail_version_insert = True

        response = client.put("/v1/agents/editor", json={"articleId": article["id"]})

        assert response.status_code == 500

    def test_empty_article_is_400(self, client, store):
        article = store.add_article(content="")

        response = client.post("/v1/agents/editor", json={"articleId": article["id"]})

        assert response.status_code == 400

    def test_rollback_without_snapshot_is_404(self, client, store):
        article = store.add_article(content="Some text")

        response = client.post("/v1/agents/editor/rollback", json={"articleId": article["id"]})

        assert response.status_code == 404


def test_job_status(client, store):
    job_id = store.create_job("outline", {})

    response = client.get(f"/v1/jobs/{job_id}")

    assert response.status_code == 200
    assert response.json()["status"] == "pending"


def test_missing_job(client):
    assert client.get(f"/v1/jobs/{uuid4()}").status_code == 404
