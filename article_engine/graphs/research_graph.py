"""Topic research LangGraph: search, analyze, embed, dedup."""

from dataclasses import dataclass, field
from typing import Any

from langgraph.graph import END, StateGraph

from article_engine.chains.discover_topics import discover_topics
from article_engine.core.config import get_settings
from article_engine.core.industries import build_search_queries, keywords_from_prompt, merge_keywords
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import DuplicateInfo, ResearchRequest, Source, TopicCandidate
from article_engine.services.topic_dedup import ScreenedTopic, dedup_topics, embed_topics
from article_engine.services.web_search import search_many

logger = get_logger(__name__)

MAX_STEPS = 20

MODE_TOPIC_COUNTS = {"discover": 12, "direct": 1, "prompt": 10}


@dataclass
class ResearchState:
    """State for the research graph."""

    # Input
    mode: str
    industry: str | None
    keywords: list[str]
    article_type: str | None
    topic_count: int
    prompt_input: str | None = None
    use_search: bool = True

    # Processing
    step_count: int = 0
    search_keywords: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)

    # Output
    topics: list[TopicCandidate] = field(default_factory=list)
    kept: list[ScreenedTopic] = field(default_factory=list)
    duplicates: list[DuplicateInfo] = field(default_factory=list)


def _check_max_steps(state: ResearchState) -> ResearchState:
    """Check step count."""
    state.step_count += 1
    if state.step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return state


def plan_queries(state: ResearchState) -> dict[str, Any]:
    """Derive search keywords and queries from the request."""
    state = _check_max_steps(state)

    if state.mode == "prompt":
        keywords = state.keywords or keywords_from_prompt(state.prompt_input or "")
    else:
        keywords = merge_keywords(state.industry, state.keywords)

    queries = build_search_queries(state.industry, keywords, get_settings().SEARCH_MAX_QUERIES)
    logger.debug(f"Planned {len(queries)} search queries", extra={"mode": state.mode})

    return {"search_keywords": keywords, "queries": queries, "step_count": state.step_count}


def should_search(state: ResearchState) -> str:
    """Prompt mode only searches when asked to."""
    if state.mode == "prompt" and not state.use_search:
        return "analyze"
    return "search"


async def run_search(state: ResearchState) -> dict[str, Any]:
    """Fetch web sources; no key or failed queries leave sources empty."""
    state = _check_max_steps(state)
    sources = await search_many(state.queries)
    logger.info(f"Collected {len(sources)} sources", extra={"queries": len(state.queries)})
    return {"sources": sources, "step_count": state.step_count}


async def analyze(state: ResearchState) -> dict[str, Any]:
    """Ask the research model for topics."""
    state = _check_max_steps(state)
    topics = await discover_topics(
        mode=state.mode,
        industry=state.industry,
        keywords=state.search_keywords,
        article_type=state.article_type,
        sources=state.sources,
        topic_count=state.topic_count,
        prompt_input=state.prompt_input,
    )
    return {"topics": topics[: state.topic_count], "step_count": state.step_count}


async def embed(state: ResearchState) -> dict[str, Any]:
    state = _check_max_steps(state)
    return {"topics": await embed_topics(state.topics), "step_count": state.step_count}


async def dedup(state: ResearchState) -> dict[str, Any]:
    """Drop topics that duplicate saved ones."""
    state = _check_max_steps(state)
    outcome = await dedup_topics(state.topics)
    return {"kept": outcome.kept, "duplicates": outcome.duplicates, "step_count": state.step_count}


def _build_graph() -> StateGraph:
    """Build research graph."""
    graph = StateGraph(ResearchState)

    graph.add_node("plan", plan_queries)
    graph.add_node("search", run_search)
    graph.add_node("analyze", analyze)
    graph.add_node("embed", embed)
    graph.add_node("dedup", dedup)

    graph.set_entry_point("plan")
    graph.add_conditional_edges(
        "plan",
        should_search,
        {
            "search": "search",
            "analyze": "analyze",
        },
    )
    graph.add_edge("search", "analyze")
    graph.add_edge("analyze", "embed")
    graph.add_edge("embed", "dedup")
    graph.add_edge("dedup", END)

    return graph


_compiled_graph = _build_graph().compile()


def topic_count_for(request: ResearchRequest) -> int:
    if request.mode == "direct":
        return 1
    return request.max_topics or MODE_TOPIC_COUNTS[request.mode]


async def run_research_graph(request: ResearchRequest) -> dict[str, Any]:
    """
    Run topic research.

    Returns:
        Final state dict with kept, duplicates, sources and search_keywords
    """
    initial_state = ResearchState(
        mode=request.mode,
        industry=request.industry,
        keywords=request.keywords,
        article_type=request.article_type.value if request.article_type else None,
        topic_count=topic_count_for(request),
        prompt_input=request.prompt_input,
        use_search=request.mode != "prompt" or request.use_search_in_prompt,
    )

    final_state = await _compiled_graph.ainvoke(initial_state)

    logger.info(
        f"Research finished: {len(final_state.get('kept', []))} kept, "
        f"{len(final_state.get('duplicates', []))} duplicates",
        extra={"mode": request.mode},
    )
    return final_state
