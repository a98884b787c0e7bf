"""Configuration management for Article Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    ARTICLE_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")
    EMBEDDING_BATCH_SIZE: int = Field(
        default=100, description="Max texts sent in a single embeddings request"
    )

    # Generation models
    OPENAI_MODEL: str = Field(default="gpt-4o", description="Default chat model")
    RESEARCH_MODEL: str = Field(default="gpt-4o", description="Model for topic discovery")
    BRAINSTORM_MODEL: str = Field(default="gpt-4o", description="Model for search-free topic ideas")
    OUTLINE_MODEL: str = Field(default="gpt-4o", description="Model for outline generation")
    WRITER_MODEL: str = Field(default="gpt-4o", description="Model for section drafting")
    EDITOR_MODEL: str = Field(default="gpt-4o", description="Model for the editing pass")
    LINKING_MODEL: str = Field(default="gpt-4o", description="Model for anchor proposals")

    OUTLINE_TEMPERATURE: float = Field(default=0.4, description="Outline temperature")
    WRITER_TEMPERATURE: float = Field(default=0.7, description="Writer temperature")
    EDITOR_TEMPERATURE: float = Field(default=0.3, description="Editor temperature")
    RESEARCH_TEMPERATURE: float = Field(default=0.3, description="Research temperature")
    BRAINSTORM_TEMPERATURE: float = Field(default=0.8, description="Brainstorm temperature")

    # Streaming protocol
    STREAM_SAVE_INTERVAL_MS: int = Field(
        default=500, description="Minimum wall-clock gap between partial content writes"
    )
    STREAM_TOKEN_TIMEOUT_S: float = Field(
        default=60.0, description="Max seconds to wait for the next model token"
    )

    # Web search (optional)
    TAVILY_API_KEY: str | None = Field(default=None, description="Tavily search API key")
    SEARCH_TIMEOUT_S: float = Field(default=7.0, description="Search request timeout")
    SEARCH_MAX_RESULTS: int = Field(default=6, description="Results per search query")
    SEARCH_MAX_QUERIES: int = Field(default=2, description="Search queries per research run")

    # Topic deduplication
    DEDUP_SURFACE_THRESHOLD: float = Field(
        default=0.85, description="Similarity at which existing topics are surfaced"
    )
    DEDUP_EXCLUDE_THRESHOLD: float = Field(
        default=0.90, description="Nearest-match similarity above which a topic is excluded"
    )
    DEDUP_MATCH_COUNT: int = Field(default=5, description="Similar topics fetched per candidate")

    # Intelligent linking
    LINK_SIMILARITY_THRESHOLD: float = Field(
        default=0.70, description="Similarity floor for link candidates"
    )
    LINK_CANDIDATE_POOL: int = Field(
        default=50, description="Similar articles fetched before site filtering"
    )
    LINK_CANDIDATE_LIMIT: int = Field(
        default=10, description="Candidates offered to the anchor proposal model"
    )
    LINK_MIN_LINKS: int = Field(default=3, description="Minimum links to propose")
    LINK_MAX_LINKS: int = Field(default=5, description="Maximum links to propose")
    LINK_ARTICLE_CHARS: int = Field(
        default=5000, description="Article characters sent to the anchor proposal model"
    )

    # Article metrics
    WORDS_PER_MINUTE: int = Field(default=200, description="Reading speed for reading time")
    EXCERPT_LENGTH: int = Field(default=160, description="Max excerpt characters")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
