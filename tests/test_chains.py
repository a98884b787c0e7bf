"""Tests for prompt construction and model output parsing."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from article_engine.chains.discover_topics import (
    build_messages as research_messages,
    discover_topics,
    match_sources_to_topic,
    parse_topics,
)
from article_engine.chains.edit_article import lost_links
from article_engine.chains.edit_outline_section import parse_section_edit, rewrite_section, section_edit_messages
from article_engine.chains.generate_outline import (
    apply_word_targets,
    build_messages as outline_messages,
    filter_suggested_links,
    parse_outline,
)
from article_engine.chains.propose_anchors import parse_suggestions
from article_engine.chains.write_article import (
    assemble_article,
    build_allowed_links,
    conclusion_messages,
    section_messages,
    strip_unlisted_links,
)
from article_engine.core.outline_budget import ArticleType, TargetLength
from article_engine.core.schemas_outline import OutlineSection, OutlineStructure, SuggestedLink
from article_engine.core.schemas_topics import Source, TopicCandidate

OUTLINE_JSON = {
    "title": "Edge AI in Retail",
    "hook": "Checkout lines are vanishing.",
    "sections": [
        {"heading": "Why now", "keyPoints": ["cheap chips"], "suggestedLinks": [{"articleId": "a1", "anchorText": "chips"}]},
        {"heading": "Use cases", "keyPoints": ["cameras"], "suggestedLinks": [{"articleId": "zz", "anchorText": "x"}]},
        {"heading": 42},
    ],
    "conclusion": {"summary": "Start small", "callToAction": "Pilot one store"},
    "seoKeywords": ["edge ai"],
}


class TestResearchChain:
    def test_parse_topics_accepts_wrapped_and_bare(self):
        wrapped = json.dumps({"topics": [{"title": "A", "summary": "s"}]})
        bare = json.dumps([{"title": "B"}, {"summary": "missing title"}, "junk"])

        assert [t.title for t in parse_topics(wrapped)] == ["A"]
        assert [t.title for t in parse_topics(bare)] == ["B"]

    def test_parse_topics_non_json(self):
        assert parse_topics("I could not find topics") == []

    def test_match_sources_needs_two_keyword_hits(self):
        topic = TopicCandidate(title="Edge AI transforms retail checkout")
        sources = [
            Source(url="https://a", title="Edge devices explained"),
            Source(url="https://b", title="Retail checkout goes cashless"),
        ]

        assert [s.url for s in match_sources_to_topic(topic, sources)] == ["https://b"]

    def test_match_sources_falls_back_to_first_three(self):
        topic = TopicCandidate(title="Quantum farming outlook")
        sources = [Source(url=f"https://{i}") for i in range(5)]

        assert len(match_sources_to_topic(topic, sources)) == 3

    def test_prompt_mode_messages_include_request(self):
        messages = research_messages(
            mode="prompt",
            industry=None,
            keywords=[],
            article_type="tutorial",
            sources=[],
            topic_count=10,
            prompt_input="beginner guides to home networking",
        )

        assert "beginner guides to home networking" in messages[0]["content"]
        assert "10 article options" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_discover_topics_attaches_sources(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(
            return_value=MagicMock(content=json.dumps({"topics": [{"title": "Retail checkout automation trends"}]}))
        )
        sources = [Source(url="https://b", title="Retail checkout automation")]

        with patch("article_engine.chains.discover_topics.get_llm", return_value=llm):
            topics = await discover_topics(
                mode="discover",
                industry="retail",
                keywords=["checkout"],
                article_type=None,
                sources=sources,
                topic_count=12,
            )

        assert topics[0].sources[0].url == "https://b"
        llm.ainvoke.assert_awaited_once()


class TestOutlineChain:
    def test_parse_outline_drops_malformed_sections(self):
        structure = parse_outline(json.dumps(OUTLINE_JSON))

        assert structure.title == "Edge AI in Retail"
        assert [s.heading for s in structure.sections] == ["Why now", "Use cases"]
        assert structure.conclusion.call_to_action == "Pilot one store"

    def test_parse_outline_handles_fences(self):
        structure = parse_outline(f"```json\n{json.dumps(OUTLINE_JSON)}\n```")

        assert len(structure.sections) == 2

    def test_parse_outline_non_json_is_untitled(self):
        structure = parse_outline("Sorry, no outline")

        assert structure.title == "Untitled"
        assert structure.sections == []

    def test_word_targets_replace_model_values(self):
        structure = parse_outline(json.dumps(OUTLINE_JSON))
        structure.sections.append(OutlineSection(heading="Risks", word_target=999))

        apply_word_targets(structure, TargetLength.SHORT)

        assert [s.word_target for s in structure.sections] == [50, 400, 50]

    def test_filter_suggested_links(self):
        structure = filter_suggested_links(parse_outline(json.dumps(OUTLINE_JSON)), {"a1"})

        assert [len(s.suggested_links) for s in structure.sections] == [1, 0]

    def test_outline_messages_state_budget(self):
        messages = outline_messages(
            topic={"title": "Edge AI", "summary": "s", "metadata": {"angle": "cost"}},
            article_type=ArticleType.BLOG,
            target_length=TargetLength.MEDIUM,
            tone="casual",
            related_articles=[{"id": "a1", "title": "Chips"}],
        )

        user = messages[1]["content"]
        assert "about 1000 words across exactly 5 sections" in user
        assert "Angle: cost" in user
        assert "id=a1" in user


class TestWriterChain:
    def _structure(self) -> OutlineStructure:
        return OutlineStructure(
            title="Edge AI",
            sections=[
                OutlineSection(
                    heading="Why now",
                    word_target=200,
                    suggested_links=[SuggestedLink(article_id="a1", anchor_text="chips")],
                ),
                OutlineSection(
                    heading="Use cases",
                    word_target=200,
                    suggested_links=[SuggestedLink(article_id="missing", anchor_text="x")],
                ),
            ],
        )

    def test_build_allowed_links_only_known_articles(self):
        links = build_allowed_links(self._structure(), [{"id": "a1", "title": "Chips", "slug": "chips"}])

        assert [(l.article_id, l.url) for l in links] == [("a1", "/articles/chips")]

    def test_strip_unlisted_links_keeps_anchor_text(self):
        text = "See [chips](/articles/chips) and [made up](/articles/fake)."

        cleaned, removed = strip_unlisted_links(text, {"/articles/chips"})

        assert cleaned == "See [chips](/articles/chips) and made up."
        assert removed == ["/articles/fake"]

    def test_section_messages_band_and_context(self):
        structure = self._structure()

        messages = section_messages(
            structure=structure,
            section=structure.sections[1],
            index=1,
            previous_sections=["one", "two", "three"],
            tone="professional",
            sources=[],
            internal_links=[],
        )

        user = messages[1]["content"]
        assert "between 180 and 220 words" in user
        assert "Section 2 of 2: Use cases" in user
        assert "two\n\nthree" in user
        assert "one" not in user.split("Previous sections")[1]

    def test_conclusion_context_is_truncated(self):
        messages = conclusion_messages(self._structure(), "x" * 5000, "professional")

        assert "x" * 1000 in messages[1]["content"]
        assert "x" * 1001 not in messages[1]["content"]

    def test_assemble_article(self):
        assert assemble_article("T", "Hook", ["## A\n\na", "## B\n\nb"], "## Conclusion\n\nc") == (
            "# T\n\nHook\n\n## A\n\na\n\n## B\n\nb\n\n## Conclusion\n\nc"
        )


def test_lost_links():
    original = "[a](/x) [b](/y) [a](/x)"

    assert lost_links(original, "[a](/x) b") == ["/y"]


def test_parse_suggestions_defaults_and_clamping():
    raw = json.dumps(
        {
            "suggestions": [
                {"anchorText": " chips ", "targetArticleId": "a1", "relevanceScore": 1.7},
                {"anchorText": "no target"},
                {"anchorText": "cameras", "targetArticleId": "a2"},
            ]
        }
    )

    suggestions = parse_suggestions(raw)

    assert suggestions[0] == {
        "anchor_text": "chips",
        "target_article_id": "a1",
        "relevance_score": 1.0,
        "reason": "Contextually relevant",
    }
    assert suggestions[1]["relevance_score"] == 0.8
    assert len(suggestions) == 2


class TestSectionEditChain:
    def _current(self) -> OutlineSection:
        return OutlineSection(
            heading="Why now",
            key_points=["cheap chips"],
            word_target=200,
            suggested_links=[SuggestedLink(article_id="a1", anchor_text="chips")],
        )

    def test_word_target_is_kept(self):
        raw = json.dumps({"heading": "Why 2026", "keyPoints": ["cheaper chips", "faster models"], "wordTarget": 900})

        section = parse_section_edit(raw, self._current())

        assert section.heading == "Why 2026"
        assert section.key_points == ["cheaper chips", "faster models"]
        assert section.word_target == 200

    def test_missing_fields_fall_back_to_current(self):
        section = parse_section_edit("```json\n{\"heading\": \"  \"}\n```", self._current())

        assert section.heading == "Why now"
        assert section.key_points == ["cheap chips"]
        assert section.suggested_links[0].article_id == "a1"

    def test_links_limited_to_existing_targets(self):
        raw = json.dumps(
            {
                "heading": "Why now",
                "suggestedLinks": [
                    {"articleId": "a1", "anchorText": "edge chips"},
                    {"articleId": "invented", "anchorText": "x"},
                ],
            }
        )

        section = parse_section_edit(raw, self._current())

        assert [(link.article_id, link.anchor_text) for link in section.suggested_links] == [("a1", "edge chips")]

    def test_non_object_output_is_error(self):
        with pytest.raises(ValueError):
            parse_section_edit("[1, 2]", self._current())
        with pytest.raises(ValueError):
            parse_section_edit("Sure! Here is the section.", self._current())

    def test_messages_carry_outline_context(self):
        outline = {
            "article_type": "tutorial",
            "tone": "casual",
            "structure": {"title": "Edge AI", "sections": [{"heading": "Why now"}, {"heading": "Setup"}]},
        }

        messages = section_edit_messages(outline, 0, self._current(), "make it punchier")

        assert "Type: tutorial" in messages[0]["content"]
        assert "Other sections: Setup" in messages[0]["content"]
        assert "make it punchier" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_rewrite_uses_json_mode(self):
        completion = AsyncMock(return_value=json.dumps({"heading": "Why 2026"}))

        with patch("article_engine.chains.edit_outline_section.complete_chat", new=completion):
            section = await rewrite_section({"structure": {}}, 0, self._current(), "update the year")

        assert section.heading == "Why 2026"
        assert completion.await_args.kwargs["json_mode"] is True
        assert completion.await_args.kwargs["temperature"] == 0.7
