"""LLM client utilities for LangChain integration."""

import json
import re

from langchain_openai import ChatOpenAI

from article_engine.core.config import get_settings


def get_llm(model: str | None = None, temperature: float = 0.1) -> ChatOpenAI:
    """
    Get configured LLM instance for LangChain chains.

    Args:
        model: Model name override (defaults to config setting)
        temperature: Temperature for generation (default 0.1)

    Returns:
        ChatOpenAI instance configured with API key and model
    """
    settings = get_settings()

    # Use provided model or fall back to config default
    model_name = model or settings.OPENAI_MODEL

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model_name,
        temperature=temperature,
    )


def strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Fallback: strip leading/trailing fences without regex
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json_any(raw_output: str) -> dict | list:
    """
    Parse LLM output as JSON, returning the raw dict or list.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
    """
    cleaned = strip_llm_fences(raw_output)
    return json.loads(cleaned)
