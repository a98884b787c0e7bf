"""Industry keyword seeds for topic discovery."""

import re

INDUSTRY_KEYWORDS: dict[str, list[str]] = {
    "ai": [
        "artificial intelligence",
        "machine learning",
        "deep learning",
        "LLM",
        "GPT",
        "neural network",
        "AI agents",
        "generative AI",
        "transformer models",
        "computer vision",
    ],
    "tech": [
        "technology",
        "software",
        "startup",
        "SaaS",
        "cloud computing",
        "cybersecurity",
        "devops",
        "programming",
        "open source",
        "tech industry",
    ],
    "health": [
        "healthcare",
        "medical",
        "wellness",
        "biotech",
        "digital health",
        "telemedicine",
        "mental health",
        "pharmaceutical",
        "clinical trials",
        "health tech",
    ],
    "finance": [
        "fintech",
        "banking",
        "investment",
        "cryptocurrency",
        "stock market",
        "venture capital",
        "financial services",
        "payments",
        "insurance tech",
        "trading",
    ],
    "climate": [
        "climate change",
        "sustainability",
        "renewable energy",
        "clean tech",
        "carbon footprint",
        "ESG",
        "green technology",
        "electric vehicles",
        "solar energy",
        "climate tech",
    ],
    "crypto": [
        "cryptocurrency",
        "blockchain",
        "web3",
        "DeFi",
        "NFT",
        "Bitcoin",
        "Ethereum",
        "smart contracts",
        "decentralized",
        "crypto regulation",
    ],
}

INDUSTRY_NAMES: dict[str, str] = {
    "ai": "AI & Machine Learning",
    "tech": "Technology",
    "health": "Health & Wellness",
    "finance": "Finance & Fintech",
    "climate": "Climate & Sustainability",
    "crypto": "Crypto & Web3",
}

DEFAULT_INDUSTRY = "tech"

_STOP_WORDS = {
    "this", "that", "with", "from", "have", "what", "when", "where", "which",
    "want", "need", "would", "could", "should", "will", "about", "article",
    "write", "writing", "looking", "create",
}


def merge_keywords(industry: str | None, keywords: list[str], limit: int = 6) -> list[str]:
    """User keywords first, then the industry seeds, deduplicated, capped."""
    merged: list[str] = []
    for kw in [*keywords, *INDUSTRY_KEYWORDS.get(industry or "", [])]:
        kw = kw.strip()
        if kw and kw not in merged:
            merged.append(kw)
    return merged[:limit]


def keywords_from_prompt(prompt: str, limit: int = 6) -> list[str]:
    """Pull search keywords out of a free-text topic request."""
    words = re.sub(r"[^\w\s]", " ", prompt.lower()).split()
    seen: list[str] = []
    for word in words:
        if len(word) > 3 and word not in _STOP_WORDS and word not in seen:
            seen.append(word)
    return seen[:limit]


def build_search_queries(industry: str | None, keywords: list[str], max_queries: int = 2) -> list[str]:
    """Short, search-engine style queries for recent coverage of the industry."""
    clean = [k.strip() for k in keywords if k.strip()][:4]
    kw = " ".join(clean[:2])
    base = industry or ""

    candidates = [
        " ".join(p for p in [base, kw, "trends", "news", "updates"] if p).strip(),
        " ".join(p for p in [base, kw, "predictions", "latest"] if p).strip(),
    ]
    queries = [q for q in candidates if q]
    return queries[:max_queries] or ["trends news"]
